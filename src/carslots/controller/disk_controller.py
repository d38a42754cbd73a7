"""Yandex Disk REST API controller."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, TypeVar

import requests

from carslots.auth import AuthInfo
from carslots.config import DEFAULT_API_BASE, Settings
from carslots.errors import (
    ApiError,
    ConflictError,
    HttpErrorInfo,
    NetworkError,
    NotFoundError,
    map_http_error,
)
from carslots.models import ResourceInfo
from carslots.paths import assert_valid_path, normalize_path, parent_path
from carslots.util.mime import DEFAULT_MIME, JSON_MIME

from .fields import (
    DOWNLOAD,
    LIST_PAGE_SIZE,
    MOVE,
    OPERATION_POLL_INTERVAL_SEC,
    OPERATION_POLL_MAX,
    PUBLISH,
    RESOURCES,
    UPLOAD,
)
from .retry import RetryPolicy

log = logging.getLogger(__name__)

T = TypeVar("T")


class YandexDiskController:
    """
    Remote store client over the Yandex Disk REST API.

    Notes:
        - Every path argument is canonicalized and validated before use.
        - 429, 5xx and network failures are retried by the RetryPolicy;
          other 4xx responses are raised immediately as carslots errors.
        - Folder creation is idempotent (409 "already exists" is success).
    """

    def __init__(
        self,
        auth_info: AuthInfo,
        *,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 30,
        retry_policy: Optional[RetryPolicy] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._auth_header: Optional[str] = auth_info.authorization_header
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._retry_policy = retry_policy or RetryPolicy()
        self._session = session or requests.Session()
        self._known_dirs: set[str] = {"/"}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        session: Optional[requests.Session] = None,
    ) -> "YandexDiskController":
        return cls(
            AuthInfo.from_token(settings.disk_token),
            api_base=settings.disk_api_base,
            timeout=settings.request_timeout_seconds,
            retry_policy=RetryPolicy(
                max_attempts=settings.retry_max_attempts,
                base_delay=settings.retry_base_delay_seconds,
            ),
            session=session,
        )

    @classmethod
    def from_session(
        cls,
        session: Any,
        *,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 30,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> "YandexDiskController":
        """Create controller from a pre-built (already authorized) session (useful for tests)."""
        obj = cls.__new__(cls)
        obj._auth_header = None
        obj._api_base = api_base.rstrip("/")
        obj._timeout = timeout
        obj._retry_policy = retry_policy or RetryPolicy()
        obj._session = session
        obj._known_dirs = {"/"}
        return obj

    # ----------------------------
    # Read
    # ----------------------------
    def get_resource(self, path: str) -> ResourceInfo:
        p = assert_valid_path(path, "get_resource")
        data = self._call(
            f"get_resource {p}",
            lambda: self._api("GET", RESOURCES, params={"path": p, "limit": 0}).json(),
        )
        return _resource_dict_to_info(data)

    def exists(self, path: str) -> bool:
        p = assert_valid_path(path, "exists")
        try:
            self.get_resource(p)
        except NotFoundError:
            return False
        return True

    def list_folder(self, path: str) -> list[ResourceInfo]:
        """
        List direct children of a folder, following pagination.

        Raises:
            NotFoundError: if the folder does not exist.
        """
        p = assert_valid_path(path, "list_folder")
        items: list[ResourceInfo] = []
        offset = 0

        while True:
            params = {"path": p, "limit": LIST_PAGE_SIZE, "offset": offset}
            data = self._call(
                f"list_folder {p}",
                lambda: self._api("GET", RESOURCES, params=params).json(),
            )
            embedded = data.get("_embedded") or {}
            page = embedded.get("items") or []
            items.extend(_resource_dict_to_info(item) for item in page)

            total = embedded.get("total")
            offset += len(page)
            if not page or len(page) < LIST_PAGE_SIZE:
                break
            if isinstance(total, int) and offset >= total:
                break

        log.debug("list_folder %s: %d item(s)", p, len(items))
        return items

    def get_download_link(self, path: str) -> str:
        p = assert_valid_path(path, "download")
        data = self._call(
            f"download link {p}",
            lambda: self._api("GET", DOWNLOAD, params={"path": p}).json(),
        )
        return _require_href(data, "download")

    def download_file(self, path: str) -> bytes:
        p = assert_valid_path(path, "download")

        def _download() -> bytes:
            href = _require_href(self._api("GET", DOWNLOAD, params={"path": p}).json(), "download")
            return self._send("GET", href).content

        return self._call(f"download {p}", _download)

    def download_text(self, path: str) -> str:
        return self.download_file(path).decode("utf-8")

    # ----------------------------
    # Write
    # ----------------------------
    def create_folder(self, path: str) -> bool:
        """
        Create a folder.

        Returns:
            True if created, False if it already existed.
        """
        p = assert_valid_path(path, "create_folder")
        if p == "/":
            return False

        def _create() -> bool:
            try:
                self._api("PUT", RESOURCES, params={"path": p})
            except ConflictError:
                return False
            return True

        created = self._call(f"create_folder {p}", _create)
        self._known_dirs.add(p)
        if created:
            log.info("Created folder %s", p)
        return created

    def ensure_dir(self, path: str) -> None:
        """Create path and all of its missing ancestors."""
        p = assert_valid_path(path, "ensure_dir")
        if p in self._known_dirs:
            return

        current = ""
        for segment in p.split("/")[1:]:
            current = f"{current}/{segment}"
            if current not in self._known_dirs:
                self.create_folder(current)

    def upload_bytes(
        self,
        path: str,
        data: bytes,
        *,
        content_type: Optional[str] = None,
        overwrite: bool = True,
    ) -> None:
        """
        Upload bytes to path, creating parent folders first.

        With overwrite=False this is a create-if-absent primitive.

        Raises:
            ConflictError: if overwrite is False and the file already exists.
        """
        p = assert_valid_path(path, "upload")
        self.ensure_dir(parent_path(p))
        params = {"path": p, "overwrite": "true" if overwrite else "false"}
        headers = {"Content-Type": content_type or DEFAULT_MIME}

        def _upload() -> None:
            href = _require_href(self._api("GET", UPLOAD, params=params).json(), "upload")
            self._send("PUT", href, data=data, headers=headers)

        self._call(f"upload {p}", _upload)
        log.debug("Uploaded %s (%d bytes)", p, len(data))

    def upload_text(self, path: str, text: str, *, overwrite: bool = True) -> None:
        content_type = JSON_MIME if path.lower().endswith(".json") else "text/plain; charset=utf-8"
        self.upload_bytes(path, text.encode("utf-8"), content_type=content_type, overwrite=overwrite)

    def delete(self, path: str, *, permanently: bool = True) -> bool:
        """
        Delete a file or folder.

        Returns:
            True if deleted, False if it did not exist.
        """
        p = assert_valid_path(path, "delete")
        params = {"path": p, "permanently": "true" if permanently else "false"}

        def _delete() -> bool:
            try:
                resp = self._api("DELETE", RESOURCES, params=params)
            except NotFoundError:
                return False
            if resp.status_code == 202:
                self._wait_operation(resp)
            return True

        deleted = self._call(f"delete {p}", _delete)
        self._known_dirs = {d for d in self._known_dirs if d != p and not d.startswith(p + "/")}
        self._known_dirs.add("/")
        return deleted

    def move(self, src: str, dst: str, *, overwrite: bool = False, retry: bool = True) -> None:
        """
        Move (or rename) a resource, waiting for asynchronous completion.

        With retry=False the request is sent once, for callers with their own
        retry loop.

        Raises:
            ConflictError: if dst exists and overwrite is False.
            NotFoundError: if src does not exist.
        """
        s = assert_valid_path(src, "move")
        d = assert_valid_path(dst, "move")
        self.ensure_dir(parent_path(d))
        params = {"from": s, "path": d, "overwrite": "true" if overwrite else "false"}

        def _move() -> None:
            resp = self._api("POST", MOVE, params=params)
            if resp.status_code == 202:
                self._wait_operation(resp)

        if retry:
            self._call(f"move {s} -> {d}", _move)
        else:
            _move()
        self._known_dirs = {x for x in self._known_dirs if x != s and not x.startswith(s + "/")}
        self._known_dirs.add("/")
        log.info("Moved %s -> %s", s, d)

    move_folder = move

    def publish(self, path: str) -> str:
        """Publish a resource and return its public URL."""
        p = assert_valid_path(path, "publish")
        self._call(f"publish {p}", lambda: self._api("PUT", PUBLISH, params={"path": p}))
        info = self.get_resource(p)
        if not info.public_url:
            raise ApiError("Publish succeeded but no public_url was returned", details={"path": p})
        return info.public_url

    # ----------------------------
    # Internals
    # ----------------------------
    def _call(self, label: str, fn: Callable[[], T]) -> T:
        return self._retry_policy.call(fn, label=label)

    def _api(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[dict[str, Any]] = None,
    ) -> requests.Response:
        return self._send(method, f"{self._api_base}{endpoint}", params=params, headers=self._headers())

    def _send(
        self,
        method: str,
        url: str,
        *,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        data: Optional[bytes] = None,
    ) -> requests.Response:
        try:
            resp = self._session.request(
                method,
                url,
                params=params,
                headers=headers,
                data=data,
                timeout=self._timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise NetworkError(f"Network error: {exc}", details={"url": url}, cause=exc) from exc

        if 200 <= resp.status_code < 300:
            return resp
        raise map_http_error(_response_to_info(resp))

    def _wait_operation(self, resp: requests.Response) -> None:
        href = _require_href(resp.json(), "operation")
        for _ in range(OPERATION_POLL_MAX):
            data = self._send("GET", href, headers=self._headers()).json()
            status = data.get("status")
            if status == "success":
                return
            if status == "failed":
                raise ApiError("Asynchronous operation failed", details={"operation": href})
            time.sleep(OPERATION_POLL_INTERVAL_SEC)

        raise ApiError("Asynchronous operation did not finish in time", details={"operation": href})

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": JSON_MIME}
        if self._auth_header:
            headers["Authorization"] = self._auth_header
        return headers


def _require_href(data: Any, what: str) -> str:
    href = data.get("href") if isinstance(data, dict) else None
    if not isinstance(href, str) or not href:
        raise ApiError(f"Response for {what} has no href", details={"response": data})
    return href


def _resource_dict_to_info(data: dict[str, Any]) -> ResourceInfo:
    raw_path = data.get("path")
    name = data.get("name", "")
    path = normalize_path(raw_path) if isinstance(raw_path, str) and raw_path.strip() else "/"

    size = data.get("size")
    if isinstance(size, str) and size.isdigit():
        size = int(size)
    elif not isinstance(size, int):
        size = None

    def _str(key: str) -> Optional[str]:
        value = data.get(key)
        return value if isinstance(value, str) else None

    return ResourceInfo(
        name=name if isinstance(name, str) else "",
        path=path,
        type="dir" if data.get("type") == "dir" else "file",
        size=size,
        modified=_str("modified"),
        mime_type=_str("mime_type"),
        public_url=_str("public_url"),
        md5=_str("md5"),
    )


def _response_to_info(resp: Any) -> HttpErrorInfo:
    message = None
    reason = getattr(resp, "reason", None)
    details: dict[str, Any] = {}

    try:
        payload = resp.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("description") or None
        if isinstance(payload.get("error"), str):
            reason = payload["error"]
            details["error"] = payload["error"]

    return HttpErrorInfo(
        status_code=resp.status_code if isinstance(resp.status_code, int) else 0,
        reason=reason if isinstance(reason, str) else None,
        message=message,
        details=details or None,
    )


import os
import tempfile
import unittest
from unittest.mock import patch

from pydantic import ValidationError

from carslots.config import DEFAULT_API_BASE, Settings, load_settings


class TestSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings()
        self.assertEqual(settings.disk_api_base, DEFAULT_API_BASE)
        self.assertEqual(settings.disk_base_dir, "/Фото")
        self.assertEqual(settings.archive_region, "ALL")
        self.assertEqual(settings.region_index_ttl_seconds, 300)
        self.assertEqual(settings.lock_ttl_seconds, 300)
        self.assertEqual(settings.max_slot_size_mb, 20)
        self.assertEqual(settings.retry_max_attempts, 3)
        self.assertIsNone(settings.database_url)

    def test_base_dir_is_canonicalized(self) -> None:
        settings = Settings(disk_base_dir=" disk:/Фото // cars/ ")
        self.assertEqual(settings.disk_base_dir, "/Фото/cars")

    def test_windows_base_dir_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(disk_base_dir="C:\\Photos")

    def test_region_list_is_normalized(self) -> None:
        settings = Settings(regions=" r1, msk ,,spb")
        self.assertEqual(settings.region_list, ["R1", "MSK", "SPB"])

    def test_byte_limits(self) -> None:
        settings = Settings(max_slot_size_mb=1, max_file_size_mb=2)
        self.assertEqual(settings.max_slot_size_bytes, 1024 * 1024)
        self.assertEqual(settings.max_file_size_bytes, 2 * 1024 * 1024)

    def test_env_prefix(self) -> None:
        env = {"CARSLOTS_DISK_TOKEN": "tok", "CARSLOTS_REGIONS": "R1,R2"}
        with patch.dict(os.environ, env, clear=True):
            settings = load_settings()
        self.assertEqual(settings.disk_token, "tok")
        self.assertEqual(settings.region_list, ["R1", "R2"])

    def test_load_settings_reads_env_file_without_overriding_environment(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            env_file = os.path.join(tmp, ".env")
            with open(env_file, "w", encoding="utf-8") as f:
                f.write("CARSLOTS_DISK_TOKEN=from-file\nCARSLOTS_ARCHIVE_REGION=arch\n")

            with patch.dict(os.environ, {"CARSLOTS_DISK_TOKEN": "from-env"}, clear=True):
                settings = load_settings(env_file)

        self.assertEqual(settings.disk_token, "from-env")
        self.assertEqual(settings.archive_region, "ARCH")

    def test_overrides_win(self) -> None:
        with patch.dict(os.environ, {"CARSLOTS_LOCK_TTL_SECONDS": "60"}, clear=True):
            settings = load_settings(lock_ttl_seconds=10)
        self.assertEqual(settings.lock_ttl_seconds, 10)


if __name__ == "__main__":
    unittest.main()

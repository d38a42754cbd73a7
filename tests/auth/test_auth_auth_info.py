import unittest

from carslots.auth import AuthInfo


class TestAuthInfo(unittest.TestCase):
    def test_auth_info_valid_oauth(self) -> None:
        info = AuthInfo(kind="oauth", data={"token": "  abc123  "})
        self.assertEqual(info.kind, "oauth")
        self.assertEqual(info.token, "abc123")
        self.assertEqual(info.authorization_header, "OAuth abc123")

    def test_from_token(self) -> None:
        info = AuthInfo.from_token("t")
        self.assertEqual(info.data, {"token": "t"})

    def test_auth_info_invalid_kind(self) -> None:
        with self.assertRaises(ValueError):
            AuthInfo(kind="basic", data={"token": "x"})

    def test_auth_info_missing_token(self) -> None:
        with self.assertRaises(ValueError):
            AuthInfo(kind="oauth", data={})
        with self.assertRaises(ValueError):
            AuthInfo(kind="oauth", data={"token": "   "})

    def test_auth_info_data_must_be_dict(self) -> None:
        with self.assertRaises(TypeError):
            AuthInfo(kind="oauth", data="token")  # type: ignore[arg-type]

    def test_repr_hides_token(self) -> None:
        self.assertNotIn("secret", repr(AuthInfo.from_token("secret")))


if __name__ == "__main__":
    unittest.main()

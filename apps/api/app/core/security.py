from __future__ import annotations

import hmac


def credentials_match(login: str, password: str, expected_login: str, expected_password: str) -> bool:
    # An unset login or password never matches, even against empty input.
    if not expected_login or not expected_password:
        return False
    login_ok = hmac.compare_digest(login.encode("utf-8"), expected_login.encode("utf-8"))
    password_ok = hmac.compare_digest(password.encode("utf-8"), expected_password.encode("utf-8"))
    return login_ok and password_ok


def mask_secret(secret: str) -> str:
    return "*" * len(secret)

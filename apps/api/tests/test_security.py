"""Tests for admin credential checks."""

import pytest

from app.core.security import credentials_match, mask_secret


def test_matching_credentials():
    assert credentials_match("admin", "secret", "admin", "secret")


@pytest.mark.parametrize(
    "login,password",
    [("admin", "wrong"), ("root", "secret"), ("", ""), ("Admin", "secret"), ("admin", "secret ")],
)
def test_mismatched_credentials(login, password):
    assert not credentials_match(login, password, "admin", "secret")


@pytest.mark.parametrize("expected_login,expected_password", [("", "secret"), ("admin", ""), ("", "")])
def test_unconfigured_credentials_fail_closed(expected_login, expected_password):
    assert not credentials_match(expected_login, expected_password, expected_login, expected_password)


def test_non_ascii_credentials():
    assert credentials_match("админ", "пароль", "админ", "пароль")


def test_mask_secret():
    assert mask_secret("secret") == "******"
    assert mask_secret("") == ""

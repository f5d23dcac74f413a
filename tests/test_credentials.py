"""Tests for core.credentials — token file handling."""

import logging
import stat

import pytest

from cfddns.core.credentials import CredentialError, load_token, mask_token, store_token

TOKEN = "0123456789abcdefABCDEF_-0123456789abcdef"


class TestLoadToken:
    def test_first_line_stripped(self, tmp_path):
        path = tmp_path / "token"
        path.write_text(f"  {TOKEN}  \nsecond line\n")
        path.chmod(0o600)
        assert load_token(path) == TOKEN

    def test_missing(self, tmp_path):
        with pytest.raises(CredentialError, match="not found"):
            load_token(tmp_path / "token")

    def test_empty(self, tmp_path):
        path = tmp_path / "token"
        path.write_text("\n")
        with pytest.raises(CredentialError, match="empty"):
            load_token(path)

    def test_warns_when_readable_by_others(self, tmp_path, caplog):
        path = tmp_path / "token"
        path.write_text(TOKEN)
        path.chmod(0o644)
        with caplog.at_level(logging.WARNING, logger="cfddns.core.credentials"):
            assert load_token(path) == TOKEN
        assert "chmod 600" in caplog.text

    def test_token_never_logged(self, tmp_path, caplog):
        path = tmp_path / "token"
        path.write_text(TOKEN)
        path.chmod(0o600)
        with caplog.at_level(logging.DEBUG, logger="cfddns.core.credentials"):
            load_token(path)
        assert TOKEN not in caplog.text
        assert f"length: {len(TOKEN)}" in caplog.text


class TestStoreToken:
    def test_owner_only_permissions(self, tmp_path):
        path = tmp_path / "state" / ".cloudflare_api_token"
        store_token(path, f"{TOKEN}\n")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        assert load_token(path) == TOKEN

    def test_tightens_existing_file(self, tmp_path):
        path = tmp_path / "token"
        path.write_text("old")
        path.chmod(0o644)
        store_token(path, TOKEN)
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        assert path.read_text() == TOKEN + "\n"


class TestMaskToken:
    def test_long_token(self):
        masked = mask_token(TOKEN)
        assert masked.startswith("0123")
        assert "cdef (40 chars)" in masked
        assert TOKEN not in masked

    def test_short_token_fully_hidden(self):
        assert mask_token("abc") == "*** (3 chars)"

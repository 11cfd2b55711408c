"""Tests for the request validation layer."""
from datetime import timedelta

import pytest

from secretdrop.application.validation.request_validator import (
    MAX_FILE_BYTES,
    MAX_MESSAGE_BYTES,
    validate_file_upload,
    validate_message,
    validate_token_format,
    validate_ttl,
)
from secretdrop.domain.entities.secret import FileUpload
from secretdrop.domain.errors import ErrorKind, ValidationError


def make_upload(filename="notes.txt", content=b"data", disposition=None):
    if disposition is None:
        disposition = f'form-data; name="file"; filename="{filename}"'
    return FileUpload(filename=filename, content_disposition=disposition, content=content)


class TestValidateMessage:
    def test_regular_message(self):
        validate_message("hello")

    @pytest.mark.parametrize("msg", ["", "   ", "\n\t"])
    def test_blank_message(self, msg):
        with pytest.raises(ValidationError, match="message is required"):
            validate_message(msg)

    def test_exactly_one_mebibyte_is_valid(self):
        validate_message("a" * MAX_MESSAGE_BYTES)

    def test_one_byte_over_is_too_large(self):
        with pytest.raises(ValidationError, match="message too large"):
            validate_message("a" * (MAX_MESSAGE_BYTES + 1))

    def test_size_is_counted_in_utf8_bytes(self):
        validate_message("é" * (MAX_MESSAGE_BYTES // 2))
        with pytest.raises(ValidationError, match="message too large"):
            validate_message("é" * (MAX_MESSAGE_BYTES // 2) + "a")

    def test_error_kind(self):
        with pytest.raises(ValidationError) as info:
            validate_message("")
        assert info.value.kind is ErrorKind.VALIDATION


class TestValidateTTL:
    def test_empty_defers_to_store_default(self):
        assert validate_ttl("") is None

    @pytest.mark.parametrize("ttl,expected", [
        ("1m", timedelta(minutes=1)),
        ("30m", timedelta(minutes=30)),
        ("1h", timedelta(hours=1)),
        ("2h30m", timedelta(hours=2, minutes=30)),
        ("48h", timedelta(hours=48)),
        ("168h", timedelta(hours=168)),
    ])
    def test_valid(self, ttl, expected):
        assert validate_ttl(ttl) == expected

    @pytest.mark.parametrize("ttl", ["invalid", "1d", "1", "h"])
    def test_invalid_format(self, ttl):
        with pytest.raises(ValidationError, match="invalid TTL format"):
            validate_ttl(ttl)

    @pytest.mark.parametrize("ttl", ["30s", "59s", "0h", "0", "-1h", "169h", "168h1s"])
    def test_out_of_range(self, ttl):
        with pytest.raises(ValidationError, match="TTL out of range"):
            validate_ttl(ttl)


class TestValidateFileUpload:
    def test_regular_upload(self):
        validate_file_upload(make_upload())

    def test_empty_upload_is_valid(self):
        validate_file_upload(make_upload(content=b""))

    def test_exactly_fifty_mebibytes_is_valid(self):
        validate_file_upload(make_upload(content=b"\0" * MAX_FILE_BYTES))

    def test_one_byte_over_is_too_large(self):
        with pytest.raises(ValidationError, match="file too large"):
            validate_file_upload(make_upload(content=b"\0" * (MAX_FILE_BYTES + 1)))

    @pytest.mark.parametrize("filename", ["../etc/passwd", "..", "a..b", "dir/file", "/abs"])
    def test_unsafe_filename(self, filename):
        with pytest.raises(ValidationError, match="invalid filename"):
            validate_file_upload(make_upload(filename=filename))

    def test_unsafe_stated_filename_with_clean_header(self):
        upload = make_upload(
            filename="dir\\file.txt",
            disposition='form-data; name="file"; filename="file.txt"',
        )
        with pytest.raises(ValidationError, match="invalid filename"):
            validate_file_upload(upload)

    def test_unsafe_header_filename_with_clean_stated_name(self):
        upload = make_upload(
            filename="file.txt",
            disposition='form-data; name="file"; filename="../file.txt"',
        )
        with pytest.raises(ValidationError, match="invalid filename"):
            validate_file_upload(upload)

    @pytest.mark.parametrize("disposition", ["", "attachment; filename=\"a.txt\"", "inline"])
    def test_malformed_part(self, disposition):
        with pytest.raises(ValidationError, match="invalid file upload"):
            validate_file_upload(make_upload(disposition=disposition))


class TestValidateTokenFormat:
    @pytest.mark.parametrize("token", [
        "hvs." + "a" * 24,
        "hvb." + "A1" * 12,
        "hvs." + "0" * 24,
        "hvs." + "Ab_-" * 23,
    ])
    def test_valid(self, token):
        validate_token_format(token)

    @pytest.mark.parametrize("token", [
        "",
        "secrettoken",
        "hvs." + "a" * 23,
        "hvs." + "a" * 25,
        "hvx." + "a" * 24,
        "s." + "a" * 24,
        "hvs." + "a" * 23 + "!",
        " hvs." + "a" * 24,
        "hvs." + "a" * 24 + "\n",
        "hvs." + "Ab_-" * 23 + "\n",
    ])
    def test_invalid(self, token):
        with pytest.raises(ValidationError, match="invalid token format"):
            validate_token_format(token)

    def test_reason_does_not_echo_token(self):
        with pytest.raises(ValidationError) as info:
            validate_token_format("hvs.not-quite-a-token")
        assert "not-quite" not in info.value.reason

"""Tests for VersionToken: generation, storage and JSON boundaries."""

import threading
import time

import pytest
from pydantic import BaseModel, ValidationError

from optilock import DecodingError, VersionToken


class Envelope(BaseModel):
    version: VersionToken = VersionToken()


class TestGenerate:
    def test_generated_token_is_present(self):
        token = VersionToken.generate()
        assert token.present
        assert token.value
        assert len(token.value) == 26

    def test_generated_values_are_unique(self):
        values = {VersionToken.generate().value for _ in range(10_000)}
        assert len(values) == 10_000

    def test_generated_values_are_unique_across_threads(self):
        results: list[str] = []
        lock = threading.Lock()

        def mint():
            batch = [VersionToken.generate().value for _ in range(1_000)]
            with lock:
                results.extend(batch)

        threads = [threading.Thread(target=mint) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 8_000
        assert len(set(results)) == 8_000

    def test_values_sort_by_creation_time(self):
        earlier = VersionToken.generate()
        time.sleep(0.005)
        later = VersionToken.generate()
        assert earlier.value < later.value


class TestState:
    def test_default_is_absent(self):
        token = VersionToken()
        assert not token.present
        assert token.value is None
        assert not token
        assert str(token) == ""

    def test_equality(self):
        assert VersionToken() == VersionToken.absent()
        assert VersionToken("a") == VersionToken("a")
        assert VersionToken("a") != VersionToken("b")
        assert VersionToken("") != VersionToken()
        assert len({VersionToken("a"), VersionToken("a"), VersionToken()}) == 2

    def test_rejects_non_string_value(self):
        with pytest.raises(TypeError):
            VersionToken(42)


class TestStorageBoundary:
    @pytest.mark.parametrize(
        "token", [VersionToken(), VersionToken("abc"), VersionToken(""), VersionToken.generate()]
    )
    def test_scan_inverts_encode(self, token):
        assert VersionToken.scan(token.encode()) == token

    def test_absent_encodes_to_none(self):
        assert VersionToken().encode() is None

    def test_scan_bytes(self):
        assert VersionToken.scan(b"01HZX") == VersionToken("01HZX")

    def test_scan_invalid_utf8(self):
        with pytest.raises(DecodingError):
            VersionToken.scan(b"\xff\xfe")

    @pytest.mark.parametrize("raw", [42, 1.5, ["x"], {"v": "x"}])
    def test_scan_type_mismatch(self, raw):
        with pytest.raises(DecodingError):
            VersionToken.scan(raw)


class TestJSONBoundary:
    def test_present_serializes_to_string(self):
        assert VersionToken("abc").serialize() == b'"abc"'

    def test_absent_serializes_to_null(self):
        assert VersionToken().serialize() == b"null"

    def test_null_deserializes_to_absent(self):
        assert VersionToken.deserialize(b"null") == VersionToken()
        assert VersionToken.deserialize("null") == VersionToken()

    def test_string_deserializes_to_present(self):
        assert VersionToken.deserialize(b'"abc"') == VersionToken("abc")

    def test_round_trip(self):
        token = VersionToken.generate()
        assert VersionToken.deserialize(token.serialize()) == token

    @pytest.mark.parametrize("data", [b"123", b"true", b'{"v": "x"}', b'["x"]'])
    def test_non_string_json_fails(self, data):
        with pytest.raises(DecodingError):
            VersionToken.deserialize(data)

    def test_malformed_json_fails(self):
        with pytest.raises(DecodingError):
            VersionToken.deserialize(b'"unterminated')


class TestPydanticField:
    def test_dumps_json_string_or_null(self):
        assert Envelope().model_dump_json() == '{"version":null}'
        assert Envelope(version=VersionToken("abc")).model_dump_json() == '{"version":"abc"}'

    def test_python_dump_keeps_token(self):
        assert Envelope(version="abc").model_dump() == {"version": VersionToken("abc")}

    def test_python_dump_validates_back(self):
        for envelope in (Envelope(), Envelope(version=VersionToken("abc"))):
            assert Envelope.model_validate(envelope.model_dump()) == envelope

    def test_validates_from_json(self):
        assert Envelope.model_validate_json('{"version":"abc"}').version == VersionToken("abc")
        assert Envelope.model_validate_json('{"version":null}').version == VersionToken()

    def test_rejects_non_string(self):
        with pytest.raises(ValidationError):
            Envelope.model_validate({"version": 5})

    def test_json_schema_is_nullable_string(self):
        schema = Envelope.model_json_schema()
        assert schema["properties"]["version"]["anyOf"] == [{"type": "string"}, {"type": "null"}]

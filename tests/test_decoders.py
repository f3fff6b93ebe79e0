"""Tests for response decoders and outcome classification."""

from __future__ import annotations

import socket

import httpx
import pytest

from wsclient.decoders import (
    CONNECTION_ERROR_CODE,
    UNKNOWN_ERROR_CODE,
    UNKNOWN_ERROR_MESSAGE,
    Decoded,
    classify_failure,
    decode_json,
    decode_json_array,
    decode_text,
    decode_xml,
    get_decoder,
    outcome_from,
    parse_xml,
)
from wsclient.exceptions import (
    BusinessError,
    ConnectionError_,
    DecodeError,
    InvalidUsageError,
    StatusError,
    TransportError,
)
from wsclient.models import OutcomeKind


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


class TestDecodeJson:
    def test_plain_object_is_success(self) -> None:
        decoded = decode_json('{"status": "ok", "count": 3}')
        assert decoded.is_error is False
        assert decoded.payload == {"status": "ok", "count": 3}

    def test_error_flag_true(self) -> None:
        decoded = decode_json('{"error": true, "error_code": "E42", "error_message": "bad"}')
        assert decoded.is_error is True
        assert decoded.code == "E42"
        assert decoded.message == "bad"

    def test_error_flag_as_string(self) -> None:
        decoded = decode_json('{"error": "true", "error_code": "E1"}')
        assert decoded.is_error is True
        assert decoded.code == "E1"

    def test_error_flag_false(self) -> None:
        decoded = decode_json('{"error": false, "error_code": "ignored"}')
        assert decoded.is_error is False

    def test_error_flag_other_values_are_not_errors(self) -> None:
        assert decode_json('{"error": 1}').is_error is False
        assert decode_json('{"error": "yes"}').is_error is False

    def test_missing_code_and_message_use_fallbacks(self) -> None:
        decoded = decode_json('{"error": true}')
        assert decoded.code == UNKNOWN_ERROR_CODE
        assert decoded.message == UNKNOWN_ERROR_MESSAGE

    def test_non_string_code_is_stringified(self) -> None:
        decoded = decode_json('{"error": true, "error_code": 500}')
        assert decoded.code == "500"

    def test_malformed_json_raises(self) -> None:
        with pytest.raises(DecodeError, match="Invalid JSON"):
            decode_json("{not json")

    def test_array_is_rejected(self) -> None:
        with pytest.raises(DecodeError, match="JSON object"):
            decode_json("[1, 2]")

    def test_decode_error_is_transport_class(self) -> None:
        with pytest.raises(TransportError):
            decode_json("")


class TestDecodeJsonArray:
    def test_array(self) -> None:
        assert decode_json_array('[1, {"a": 2}]') == [1, {"a": 2}]

    def test_object_is_rejected(self) -> None:
        with pytest.raises(DecodeError, match="JSON array"):
            decode_json_array('{"a": 1}')


# ---------------------------------------------------------------------------
# XML
# ---------------------------------------------------------------------------


class TestDecodeXml:
    def test_document_is_success(self) -> None:
        decoded = decode_xml('<response status="ok"><item id="1"/></response>')
        assert decoded.is_error is False
        assert decoded.payload.tag == "response"
        assert decoded.payload.find("item").get("id") == "1"

    def test_error_attribute(self) -> None:
        decoded = decode_xml('<response error="1" error_code="E7" error_message="nope"/>')
        assert decoded.is_error is True
        assert decoded.code == "E7"
        assert decoded.message == "nope"

    def test_error_attribute_fallbacks(self) -> None:
        decoded = decode_xml('<response error="1"/>')
        assert decoded.code == UNKNOWN_ERROR_CODE
        assert decoded.message == UNKNOWN_ERROR_MESSAGE

    def test_error_attribute_other_values(self) -> None:
        assert decode_xml('<response error="0"/>').is_error is False
        assert decode_xml('<response error="true"/>').is_error is False

    def test_error_on_child_is_ignored(self) -> None:
        assert decode_xml('<response><child error="1"/></response>').is_error is False

    def test_malformed_xml_raises(self) -> None:
        with pytest.raises(DecodeError, match="Invalid XML"):
            decode_xml("<open>")

    def test_entity_expansion_is_refused(self) -> None:
        document = (
            '<?xml version="1.0"?>'
            '<!DOCTYPE bomb [<!ENTITY a "aaaaaaaaaa">]>'
            "<bomb>&a;</bomb>"
        )
        with pytest.raises(DecodeError):
            parse_xml(document)


# ---------------------------------------------------------------------------
# Text and registry
# ---------------------------------------------------------------------------


class TestDecodeText:
    def test_text_is_returned_unchanged(self) -> None:
        decoded = decode_text('{"error": true}')
        assert decoded.payload == '{"error": true}'
        assert decoded.is_error is False


class TestGetDecoder:
    @pytest.mark.parametrize(
        "name, expected",
        [("json", decode_json), ("XML", decode_xml), ("text", decode_text)],
    )
    def test_known_names(self, name, expected) -> None:
        assert get_decoder(name) is expected

    def test_unknown_name(self) -> None:
        with pytest.raises(InvalidUsageError, match="Unknown decoder 'yaml'"):
            get_decoder("yaml")


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestOutcomeFrom:
    def test_success(self) -> None:
        outcome = outcome_from(Decoded(payload={"a": 1}))
        assert outcome.kind is OutcomeKind.SUCCESS
        assert outcome.is_success
        assert outcome.payload == {"a": 1}

    def test_business_error_drops_payload(self) -> None:
        outcome = outcome_from(Decoded(payload={"error": True}, is_error=True, code="E", message="m"))
        assert outcome.kind is OutcomeKind.BUSINESS_ERROR
        assert not outcome.is_success
        assert outcome.payload is None
        assert (outcome.code, outcome.message) == ("E", "m")


class TestRaiseForError:
    def test_success_does_not_raise(self) -> None:
        outcome_from(Decoded(payload={})).raise_for_error()

    def test_business_error(self) -> None:
        outcome = outcome_from(Decoded(payload={}, is_error=True, code="E42", message="bad"))
        with pytest.raises(BusinessError) as exc_info:
            outcome.raise_for_error()
        assert exc_info.value.code == "E42"
        assert exc_info.value.error_message == "bad"
        assert exc_info.value.exit_code == 8

    def test_connection_error(self) -> None:
        outcome = classify_failure(ConnectionError_("refused"))
        with pytest.raises(ConnectionError_) as exc_info:
            outcome.raise_for_error()
        assert exc_info.value.exit_code == 6

    def test_other_transport_error(self) -> None:
        outcome = classify_failure(StatusError("500 Internal Server Error", status_code=500))
        with pytest.raises(TransportError, match="StatusError: 500") as exc_info:
            outcome.raise_for_error()
        assert exc_info.value.exit_code == 5
        assert isinstance(exc_info.value.__cause__, StatusError)

    def test_decode_error_keeps_its_exit_code(self) -> None:
        try:
            decode_json("<html>not json</html>")
        except DecodeError as exc:
            outcome = classify_failure(exc)
        assert outcome.code == UNKNOWN_ERROR_CODE
        with pytest.raises(DecodeError, match="JSONDecodeError: ") as exc_info:
            outcome.raise_for_error()
        assert exc_info.value.exit_code == 7


class TestClassifyFailure:
    def test_status_error_is_unknown_error(self) -> None:
        outcome = classify_failure(StatusError("404 Not Found", status_code=404))
        assert outcome.kind is OutcomeKind.TRANSPORT_ERROR
        assert outcome.code == UNKNOWN_ERROR_CODE
        assert outcome.message == "StatusError: 404 Not Found"

    def test_connection_error_uses_cause_name(self) -> None:
        try:
            try:
                raise httpx.ReadTimeout("timed out")
            except httpx.ReadTimeout as cause:
                raise ConnectionError_("timed out") from cause
        except ConnectionError_ as exc:
            outcome = classify_failure(exc)
        assert outcome.code == CONNECTION_ERROR_CODE
        assert outcome.message == "ReadTimeout: timed out"

    @pytest.mark.parametrize(
        "exc",
        [
            socket.timeout("timed out"),
            socket.gaierror("Name or service not known"),
            ConnectionRefusedError("refused"),
            TimeoutError("slow"),
        ],
    )
    def test_socket_level_failures_are_connection_errors(self, exc) -> None:
        assert classify_failure(exc).code == CONNECTION_ERROR_CODE

    def test_decode_error_is_unknown_error(self) -> None:
        outcome = classify_failure(DecodeError("Invalid JSON response: x"))
        assert outcome.code == UNKNOWN_ERROR_CODE
        assert outcome.message.startswith("DecodeError: ")

    def test_arbitrary_exception(self) -> None:
        outcome = classify_failure(ValueError("boom"))
        assert outcome.code == UNKNOWN_ERROR_CODE
        assert outcome.message == "ValueError: boom"

import json

import pytest

from app.domain.validation import (
    HREF_CONTENT_EXCLUSIVE,
    TEXT_HTML_EXCLUSIVE,
    validate_mail_body,
    validate_mail_payload,
)

VALID = "test@example.com"
INVALID = "invalid-email"
MISSING = object()


def base_payload() -> dict:
    return {
        "from": VALID,
        "to": [VALID],
        "cc": [VALID],
        "bcc": [VALID],
        "subject": "Valid text",
        "text": "Valid text",
    }


def with_field(name: str, value) -> dict:
    payload = base_payload()
    if value is MISSING:
        payload.pop(name, None)
    else:
        payload[name] = value
    return payload


def messages(result) -> list[str]:
    return [e.msg for e in result.errors]


@pytest.mark.parametrize(
    "value, ok",
    [
        (VALID, True),
        (INVALID, False),
        ([VALID], False),
        ([INVALID], False),
        ([VALID, "test2@example.com"], False),
        ("", False),
        (MISSING, False),
        ("valid@example.com'; DROP TABLE users;--", False),
        ('<script>alert("XSS")</script>@example.com', False),
    ],
)
def test_from_field(value, ok):
    result = validate_mail_payload(with_field("from", value))
    assert result.ok is ok
    if not ok:
        assert messages(result)[0] == "Invalid sender email address"


@pytest.mark.parametrize(
    "value, ok",
    [
        (VALID, False),
        (INVALID, False),
        ([VALID], True),
        ([INVALID], False),
        ([VALID, "test2@example.com"], True),
        ([VALID, INVALID], False),
        ([INVALID, INVALID], False),
        ([], False),
        ("", False),
        (MISSING, False),
    ],
)
def test_to_field(value, ok):
    assert validate_mail_payload(with_field("to", value)).ok is ok


@pytest.mark.parametrize("name", ["cc", "bcc"])
@pytest.mark.parametrize(
    "value, ok",
    [
        (VALID, False),
        (INVALID, False),
        ([VALID], True),
        ([INVALID], False),
        ([VALID, "test2@example.com"], True),
        ([VALID, INVALID], False),
        ([], True),
        ("", False),
        (MISSING, True),
    ],
)
def test_copy_fields(name, value, ok):
    assert validate_mail_payload(with_field(name, value)).ok is ok


def test_bare_string_to_is_rejected_even_when_it_is_an_address():
    result = validate_mail_payload(with_field("to", VALID))
    assert messages(result) == ["To must be an array of email addresses"]


def test_each_bad_recipient_is_reported_with_its_index():
    result = validate_mail_payload(with_field("to", [VALID, INVALID, INVALID]))
    assert [e.path for e in result.errors] == ["to[1]", "to[2]"]
    assert set(messages(result)) == {"Invalid email address in To field"}


@pytest.mark.parametrize(
    "value, ok",
    [
        ("Valid text", True),
        ("", False),
        (MISSING, False),
        (None, False),
        ("Test'; DROP TABLE users;--", True),
        ('<script>alert("XSS")</script>', True),
    ],
)
def test_subject_field(value, ok):
    assert validate_mail_payload(with_field("subject", value)).ok is ok


@pytest.mark.parametrize(
    "text, html, ok",
    [
        ("Valid text", MISSING, True),
        (MISSING, "<p>Valid</p>", True),
        ("Valid text", "<p>Valid</p>", False),
        (MISSING, MISSING, False),
        ("", MISSING, False),
        (MISSING, "", False),
        ("Test'; DROP TABLE users;--", MISSING, True),
        ('<script>alert("XSS")</script>', MISSING, True),
    ],
)
def test_text_html_fields(text, html, ok):
    payload = with_field("text", text)
    if html is not MISSING:
        payload["html"] = html
    assert validate_mail_payload(payload).ok is ok


def test_both_bodies_present_reports_exclusivity():
    payload = base_payload() | {"html": "<p>hi</p>"}
    assert messages(validate_mail_payload(payload)) == [TEXT_HTML_EXCLUSIVE]


def test_no_body_reports_exclusivity_not_a_missing_field():
    result = validate_mail_payload(with_field("text", MISSING))
    assert messages(result) == [TEXT_HTML_EXCLUSIVE]


def test_empty_text_is_present_but_invalid_and_breaks_exclusivity():
    result = validate_mail_payload(with_field("text", ""))
    assert messages(result) == ["Message cannot be empty", TEXT_HTML_EXCLUSIVE]


def test_unknown_top_level_key_is_named():
    payload = base_payload() | {"foo": "bar"}
    result = validate_mail_payload(payload)
    assert messages(result) == ["Invalid keys found in request body: foo"]
    assert result.errors[0].path == "foo"


def test_all_errors_are_collected_in_rule_order():
    payload = {"from": INVALID, "to": [INVALID], "subject": "", "text": "", "x": 1}
    assert messages(validate_mail_payload(payload)) == [
        "Invalid sender email address",
        "Invalid email address in To field",
        "Subject cannot be empty",
        "Message cannot be empty",
        TEXT_HTML_EXCLUSIVE,
        "Invalid keys found in request body: x",
    ]


def test_error_dicts_carry_msg_and_location():
    result = validate_mail_payload(with_field("subject", ""))
    assert result.error_dicts() == [
        {"type": "field", "msg": "Subject cannot be empty", "path": "subject", "location": "body"}
    ]


def test_valid_payload_builds_message():
    payload = base_payload()
    result = validate_mail_payload(payload)
    assert result.ok
    message = result.message
    assert message.sender == VALID
    assert message.to == (VALID,)
    assert message.cc == (VALID,)
    assert message.text == "Valid text"
    assert message.html is None
    assert message.attachments == ()


def test_revalidating_a_valid_message_accepts_again():
    payload = base_payload() | {
        "attachments": [{"filename": "Q&A.pdf", "content": "aGVsbG8=", "cid": "logo"}]
    }
    first = validate_mail_payload(payload)
    second = validate_mail_payload(first.message.to_payload())
    assert first.ok and second.ok
    assert second.message == first.message


def test_subject_is_sanitized_without_changing_the_verdict():
    result = validate_mail_payload(with_field("subject", '<b>Hi</b>\r\nBcc: x@evil.com'))
    assert result.ok
    assert result.message.subject == "&lt;b&gt;Hi&lt;/b&gt; Bcc: x@evil.com"


def test_text_body_is_not_escaped():
    result = validate_mail_payload(with_field("text", "<p>5 > 3</p>"))
    assert result.message.text == "<p>5 > 3</p>"


@pytest.mark.parametrize(
    "raw",
    [
        b"",
        b"not json",
        b"[1, 2]",
        b'"string"',
        b"\xff\xfe",
        pytest.param(b"[" * 100_000 + b"]" * 100_000, id="deeply-nested"),
    ],
)
def test_body_must_be_a_json_object(raw):
    result = validate_mail_body(raw)
    assert not result.ok
    assert messages(result) == ["Request body must be a JSON object"]


def test_body_is_decoded_and_validated():
    assert validate_mail_body(json.dumps(base_payload()).encode()).ok


# Attachments


def with_attachments(*attachments) -> dict:
    payload = base_payload()
    payload["attachments"] = list(attachments)
    return payload


def href_attachment(**overrides) -> dict:
    return {"filename": "test.txt", "href": "http://example.com/file.txt", "cid": "content-id"} | overrides


def content_attachment(**overrides) -> dict:
    return {"filename": "test.txt", "content": "Sample Content", "cid": "content-id"} | overrides


def test_attachment_with_href_is_valid():
    assert validate_mail_payload(with_attachments(href_attachment())).ok


def test_attachment_with_string_content_is_valid():
    assert validate_mail_payload(with_attachments(content_attachment())).ok


def test_attachment_with_base64_content_is_valid():
    attachment = content_attachment(content="iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg==")
    assert validate_mail_payload(with_attachments(attachment)).ok


def test_attachment_without_cid_is_valid():
    attachment = href_attachment()
    del attachment["cid"]
    assert validate_mail_payload(with_attachments(attachment)).ok


def test_empty_attachment_list_is_valid():
    assert validate_mail_payload(with_attachments()).ok


def test_attachment_missing_filename():
    attachment = href_attachment()
    del attachment["filename"]
    result = validate_mail_payload(with_attachments(attachment))
    assert messages(result)[0] == "Attachment filename must be a string"


@pytest.mark.parametrize("content", [[1, 2, 3, 4], {"type": "Buffer", "data": [1, 2]}, 42, True])
def test_attachment_content_must_be_a_string(content):
    result = validate_mail_payload(with_attachments(content_attachment(content=content)))
    assert not result.ok
    assert messages(result)[0] == "Attachment content must be a string (base64 for binary data)"


@pytest.mark.parametrize(
    "href",
    [
        "not a url",
        "",
        123,
        "file:///etc/passwd",
        "javascript:alert(1)",
        "mailto:a@b.com",
        "gopher://x/y",
        "foo:bar",
    ],
)
def test_attachment_href_must_be_a_url(href):
    result = validate_mail_payload(with_attachments(href_attachment(href=href)))
    assert messages(result)[0] == "Attachment href must be a URL"


def test_attachment_with_both_href_and_content():
    attachment = content_attachment(href="http://example.com/file.txt")
    result = validate_mail_payload(with_attachments(attachment))
    assert messages(result) == [HREF_CONTENT_EXCLUSIVE]


def test_attachment_with_neither_href_nor_content():
    attachment = href_attachment()
    del attachment["href"]
    result = validate_mail_payload(with_attachments(attachment))
    assert messages(result) == [HREF_CONTENT_EXCLUSIVE]


def test_attachment_unknown_key_is_named():
    result = validate_mail_payload(with_attachments(href_attachment(unwanted_field="test")))
    assert messages(result) == ["Attachment contains an invalid field: unwanted_field"]
    assert result.errors[0].path == "attachments[0].unwanted_field"


def test_legacy_path_key_is_not_accepted():
    attachment = {"filename": "a.txt", "path": "http://example.com/a.txt"}
    result = validate_mail_payload(with_attachments(attachment))
    assert HREF_CONTENT_EXCLUSIVE in messages(result)
    assert "Attachment contains an invalid field: path" in messages(result)


def test_two_valid_attachments():
    assert validate_mail_payload(with_attachments(href_attachment(), content_attachment())).ok


def test_one_invalid_attachment_fails_the_whole_request():
    broken = href_attachment()
    del broken["filename"]
    result = validate_mail_payload(with_attachments(href_attachment(), content_attachment(), broken))
    assert not result.ok
    assert messages(result)[0] == "Attachment filename must be a string"
    assert result.errors[0].path == "attachments[2].filename"


@pytest.mark.parametrize("value", ["a.txt", {"filename": "a.txt"}, 5])
def test_attachments_must_be_a_list_of_objects(value):
    payload = base_payload()
    payload["attachments"] = value
    result = validate_mail_payload(payload)
    assert messages(result)[0] == "Attachments must be an array of objects"


def test_attachment_element_must_be_an_object():
    result = validate_mail_payload(with_attachments("a.txt"))
    assert messages(result) == ["Attachments must be an array of objects"]
    assert result.errors[0].path == "attachments[0]"


def test_attachment_filename_and_cid_lose_line_breaks_only():
    attachment = content_attachment(filename="Q&A\r\nreport.pdf", cid='a"b\nc')
    result = validate_mail_payload(with_attachments(attachment))
    built = result.message.attachments[0]
    assert built.filename == "Q&A report.pdf"
    assert built.cid == 'a"b c'
    assert built.content == "Sample Content"
    assert built.href is None

"""
Unit tests for the ELB access-log parser.

Tests cover:
- Tokenizer quoting, escaping and trailing-field rules
- ALB / NLB / CLB classification order
- Schema mapping and field counts
- Timestamp parsing
- Malformed line rejection
"""

import json
from datetime import datetime, timezone

import pytest

from elb_log_forwarder.ingestion import LogFormat, MalformedRecordError, ParsedRecord
from elb_log_forwarder.ingestion.parsers import (
    classify,
    classify_and_map,
    parse_line,
    parse_timestamp,
    tokenize,
)
from elb_log_forwarder.ingestion.parsers.schema import (
    ALB_FIELDS,
    CLB_FIELDS,
    NLB_FIELDS,
    get_schema,
)
from tests.samples import (
    ALB_HTTPS_LINE,
    ALB_LINE,
    CLB_LINE,
    CLB_TCP_LINE,
    NLB_ALPN_LINE,
    NLB_LINE,
)


class TestTokenize:
    """Tests for the access-log tokenizer."""

    def test_splits_on_spaces(self):
        """Test plain space-separated fields."""
        assert tokenize("a b c") == ["a", "b", "c"]

    def test_quoted_field_keeps_spaces(self):
        """Test that quoted spans are one field with quotes dropped."""
        assert tokenize('a "GET / HTTP/1.1" c') == ["a", "GET / HTTP/1.1", "c"]

    def test_quoted_empty_string(self):
        """Test that "" yields an empty field."""
        assert tokenize('a "" c') == ["a", "", "c"]

    def test_backslash_escapes_next_char(self):
        """Test that an escaped quote is literal and the backslash dropped."""
        assert tokenize(r'a "say \"hi\"" c') == ["a", 'say "hi"', "c"]

    def test_escaped_space_does_not_split(self):
        """Test that an escaped space is part of the field."""
        assert tokenize(r"a\ b c") == ["a b", "c"]

    def test_escaped_backslash(self):
        """Test that a double backslash yields one literal backslash."""
        assert tokenize(r"a\\b") == ["a\\b"]

    def test_trailing_separator_adds_no_field(self):
        """Test that content after the last separator is a field only if non-empty."""
        assert tokenize("a b ") == ["a", "b"]

    def test_consecutive_separators_yield_empty_field(self):
        """Test that two spaces produce an empty field between them."""
        assert tokenize("a  b") == ["a", "", "b"]

    def test_empty_line(self):
        """Test that an empty line has no fields."""
        assert tokenize("") == []

    def test_quote_inside_token_joins_across_space(self):
        """Test that quotes toggle mid-token like the ALPN preference list."""
        assert tokenize('h2 "h2","http/1.1"') == ["h2", "h2,http/1.1"]

    def test_multibyte_characters_preserved(self):
        """Test that non-ASCII characters pass through unchanged."""
        assert tokenize('x "Mozilla/5.0 (日本語)" y') == ["x", "Mozilla/5.0 (日本語)", "y"]


class TestClassify:
    """Tests for format classification order."""

    def test_alb_by_third_token(self):
        """Test that an app/ prefix at index 2 means ALB."""
        assert classify(tokenize(ALB_LINE)) is LogFormat.ALB

    def test_nlb_by_fourth_token(self):
        """Test that a net/ prefix at index 3 means NLB."""
        assert classify(tokenize(NLB_LINE)) is LogFormat.NLB

    def test_clb_is_fallback(self):
        """Test that a line matching neither prefix is CLB."""
        assert classify(tokenize(CLB_LINE)) is LogFormat.CLB

    def test_alb_checked_before_nlb(self):
        """Test that ALB wins when both prefixes are present."""
        assert classify(["h", "t", "app/x/1", "net/y/2"]) is LogFormat.ALB

    def test_too_few_tokens(self):
        """Test that a line too short to classify is malformed."""
        with pytest.raises(MalformedRecordError, match="too few to classify"):
            classify(["a", "b", "c"])


class TestSchemas:
    """Tests for the field schemas."""

    def test_field_counts(self):
        """Test the schema length of each format."""
        assert len(ALB_FIELDS) == 29
        assert len(NLB_FIELDS) == 21
        assert len(CLB_FIELDS) == 15

    def test_field_names_unique(self):
        """Test that no schema repeats a field name."""
        for fields in (ALB_FIELDS, NLB_FIELDS, CLB_FIELDS):
            assert len(set(fields)) == len(fields)

    def test_timestamp_index_points_at_time(self):
        """Test that each schema's timestamp index names the time field."""
        for log_format in LogFormat:
            schema = get_schema(log_format)
            assert schema.fields[schema.timestamp_index] == "time"


class TestParseLine:
    """Tests for full line parsing."""

    def test_alb_http_line(self):
        """Test an ALB HTTP line maps onto the ALB schema."""
        record = parse_line(ALB_LINE)

        assert record.log_format is LogFormat.ALB
        assert record.fields["elb"] == "app/my-loadbalancer/50dc6c495c0c9188"
        assert record.timestamp == datetime(
            2018, 7, 2, 22, 23, 0, 186641, tzinfo=timezone.utc
        )
        assert record.fields["request"] == "GET http://www.example.com:80/ HTTP/1.1"
        assert record.fields["classification_reason"] == "-"
        assert record.raw == ALB_LINE

    def test_alb_fields_in_schema_order(self):
        """Test that field values follow token order."""
        record = parse_line(ALB_HTTPS_LINE)

        assert list(record.fields) == list(ALB_FIELDS)
        assert list(record.fields.values()) == tokenize(ALB_HTTPS_LINE)
        assert record.fields["actions_executed"] == "authenticate,forward"

    def test_alb_timestamp_ms(self):
        """Test millisecond conversion truncates microseconds."""
        assert parse_line(ALB_LINE).timestamp_ms == 1530570180186

    def test_clb_line(self):
        """Test a CLB line maps onto the CLB schema."""
        record = parse_line(CLB_LINE)

        assert record.log_format is LogFormat.CLB
        assert record.fields["elb"] == "my-loadbalancer"
        assert record.fields["user_agent"] == "curl/7.38.0"
        assert record.timestamp == datetime(
            2015, 5, 13, 23, 39, 43, 945958, tzinfo=timezone.utc
        )

    def test_clb_tcp_line_keeps_quoted_spaces(self):
        """Test a CLB TCP line whose request field is dashes and spaces."""
        record = parse_line(CLB_TCP_LINE)

        assert record.log_format is LogFormat.CLB
        assert record.fields["request"] == "- - - "
        assert record.fields["elb_status_code"] == "-"

    def test_nlb_line(self):
        """Test an NLB line maps onto the NLB schema."""
        record = parse_line(NLB_LINE)

        assert record.log_format is LogFormat.NLB
        assert record.fields["elb"] == "net/my-network-loadbalancer/c6e77e28c25b2234"
        assert record.fields["alpn_client_preference_list"] == "-"

    def test_nlb_naive_timestamp_is_utc(self):
        """Test that an NLB timestamp without zone is read as UTC."""
        record = parse_line(NLB_LINE)

        assert record.timestamp == datetime(2018, 12, 20, 2, 59, 40, tzinfo=timezone.utc)

    def test_nlb_alpn_line(self):
        """Test an NLB line with ALPN fields."""
        record = parse_line(NLB_ALPN_LINE)

        assert record.fields["alpn_fe_protocol"] == "h2"
        assert record.fields["alpn_client_preference_list"] == "h2,http/1.1"

    def test_field_count_mismatch_rejected(self):
        """Test that a line with an extra field is malformed, not truncated."""
        with pytest.raises(MalformedRecordError, match="ALB line has 30 fields"):
            parse_line(ALB_LINE + " extra")

    def test_missing_field_rejected(self):
        """Test that a line with a missing field is malformed, not padded."""
        truncated = CLB_LINE.rsplit(" ", 1)[0]
        with pytest.raises(MalformedRecordError, match="expected 15"):
            parse_line(truncated)

    def test_garbage_rejected(self):
        """Test that free text is classified as CLB and then rejected."""
        with pytest.raises(MalformedRecordError, match="CLB line"):
            parse_line("this is not an access log line at all")

    def test_bad_timestamp_rejected(self):
        """Test that an unparseable timestamp is malformed."""
        line = CLB_LINE.replace("2015-05-13T23:39:43.945958Z", "yesterday", 1)
        with pytest.raises(MalformedRecordError, match="timestamp"):
            parse_line(line)

    def test_to_json_is_compact_and_ordered(self):
        """Test the JSON rendering of a record's fields."""
        record = parse_line(CLB_LINE)
        rendered = record.to_json()

        assert rendered.startswith('{"time":"2015-05-13T23:39:43.945958Z","elb":"my-loadbalancer"')
        assert ", " not in rendered
        assert json.loads(rendered) == dict(record.fields)

    def test_fields_read_only(self):
        """Test that a parsed record's fields cannot be changed."""
        record = parse_line(CLB_LINE)

        with pytest.raises(TypeError):
            record.fields["elb"] = "other"
        with pytest.raises(TypeError):
            del record.fields["elb"]

        assert record.fields["elb"] == "my-loadbalancer"

    def test_fields_detached_from_source(self):
        """Test that mutating the mapping a record was built from has no effect."""
        source = {"time": "2015-05-13T23:39:43.945958Z"}
        record = ParsedRecord(
            timestamp=datetime(2015, 5, 13, tzinfo=timezone.utc),
            log_format=LogFormat.CLB,
            fields=source,
            raw="",
        )

        source["time"] = "changed"

        assert record.fields["time"] == "2015-05-13T23:39:43.945958Z"


class TestClassifyAndMap:
    """Tests for classify_and_map with pre-tokenized input."""

    def test_keeps_raw_line(self):
        """Test that the raw line passed in is stored unchanged."""
        record = classify_and_map(tokenize(CLB_LINE), "raw text")
        assert record.raw == "raw text"


class TestParseTimestamp:
    """Tests for timestamp parsing."""

    def test_z_suffix(self):
        """Test a UTC timestamp with Z suffix."""
        assert parse_timestamp("2018-07-02T22:23:00.186641Z") == datetime(
            2018, 7, 2, 22, 23, 0, 186641, tzinfo=timezone.utc
        )

    def test_offset_converted_to_utc(self):
        """Test that an explicit offset is normalized to UTC."""
        assert parse_timestamp("2018-07-02T23:23:00+01:00") == datetime(
            2018, 7, 2, 22, 23, 0, tzinfo=timezone.utc
        )

    def test_invalid(self):
        """Test that garbage raises ValueError."""
        with pytest.raises(ValueError):
            parse_timestamp("not-a-timestamp")

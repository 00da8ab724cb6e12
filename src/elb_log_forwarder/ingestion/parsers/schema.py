"""
Field schemas for the three ELB access-log formats.

Each schema is the fixed, ordered list of field names for one format; the
tokenizer must produce exactly this many fields for a line of that format.

References:
    ALB: https://docs.aws.amazon.com/elasticloadbalancing/latest/application/load-balancer-access-logs.html#access-log-entry-format
    NLB: https://docs.aws.amazon.com/elasticloadbalancing/latest/network/load-balancer-access-logs.html#access-log-entry-format
    CLB: https://docs.aws.amazon.com/elasticloadbalancing/latest/classic/access-log-collection.html#access-log-entry-format
"""

from dataclasses import dataclass

from ..base import LogFormat


ALB_FIELDS = (
    "type",
    "time",
    "elb",
    "client:port",
    "target:port",
    "request_processing_time",
    "target_processing_time",
    "response_processing_time",
    "elb_status_code",
    "target_status_code",
    "received_bytes",
    "sent_bytes",
    "request",
    "user_agent",
    "ssl_cipher",
    "ssl_protocol",
    "target_group_arn",
    "trace_id",
    "domain_name",
    "chosen_cert_arn",
    "matched_rule_priority",
    "request_creation_time",
    "actions_executed",
    "redirect_url",
    "error_reason",
    "target:port_list",
    "target_status_code_list",
    "classification",
    "classification_reason",
)

NLB_FIELDS = (
    "type",
    "version",
    "time",
    "elb",
    "listener",
    "client:port",
    "destination:port",
    "connection_time",
    "tls_handshake_time",
    "received_bytes",
    "sent_bytes",
    "incoming_tls_alert",
    "chosen_cert_arn",
    "chosen_cert_serial",
    "tls_cipher",
    "tls_protocol_version",
    "tls_named_group",
    "domain_name",
    "alpn_fe_protocol",
    "alpn_be_protocol",
    "alpn_client_preference_list",
)

CLB_FIELDS = (
    "time",
    "elb",
    "client:port",
    "backend:port",
    "request_processing_time",
    "backend_processing_time",
    "response_processing_time",
    "elb_status_code",
    "backend_status_code",
    "received_bytes",
    "sent_bytes",
    "request",
    "user_agent",
    "ssl_cipher",
    "ssl_protocol",
)


@dataclass(frozen=True)
class FormatSchema:
    """
    Schema of one access-log format.

    Attributes:
        log_format: Format this schema describes
        fields: Ordered field names
        timestamp_index: Position of the event time among the fields
    """

    log_format: LogFormat
    fields: tuple[str, ...]
    timestamp_index: int

    @property
    def field_count(self) -> int:
        return len(self.fields)


SCHEMAS = {
    LogFormat.ALB: FormatSchema(LogFormat.ALB, ALB_FIELDS, timestamp_index=1),
    LogFormat.NLB: FormatSchema(LogFormat.NLB, NLB_FIELDS, timestamp_index=2),
    LogFormat.CLB: FormatSchema(LogFormat.CLB, CLB_FIELDS, timestamp_index=0),
}


def get_schema(log_format: LogFormat) -> FormatSchema:
    """Return the schema for a format."""
    return SCHEMAS[log_format]

"""Structured logging configuration."""
import logging
import sys

from opentelemetry import trace
from pythonjsonlogger import jsonlogger

from config import ENVIRONMENT, OTEL_ENABLED, OTEL_EXPORTER_OTLP_ENDPOINT, SERVICE_NAME

NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON lines tagged with the service name and, inside a span, its trace ids."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["service"] = SERVICE_NAME

        context = trace.get_current_span().get_span_context()
        if context.is_valid:
            log_record["trace_id"] = format(context.trace_id, "032x")
            log_record["span_id"] = format(context.span_id, "016x")


def _otlp_log_handler() -> logging.Handler:
    # The OpenTelemetry logs SDK still lives under private module names
    from opentelemetry._logs import set_logger_provider
    from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
    from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
    from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
    from opentelemetry.sdk.resources import Resource

    provider = LoggerProvider(resource=Resource.create({
        "service.name": SERVICE_NAME,
        "deployment.environment": ENVIRONMENT
    }))
    exporter = OTLPLogExporter(endpoint=OTEL_EXPORTER_OTLP_ENDPOINT, insecure=True)
    provider.add_log_record_processor(BatchLogRecordProcessor(exporter))
    set_logger_provider(provider)
    return LoggingHandler(level=logging.INFO, logger_provider=provider)


def setup_logging(level: int = logging.INFO) -> None:
    """
    Send JSON logs to stdout, and to the OTLP collector when telemetry is enabled.

    Safe to call more than once; previously installed root handlers are replaced.
    """
    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    stdout = logging.StreamHandler(sys.stdout)
    stdout.setFormatter(CustomJsonFormatter(
        "%(levelname)s %(name)s %(message)s",
        rename_fields={"levelname": "level", "message": "msg"}
    ))
    root.addHandler(stdout)

    if OTEL_ENABLED:
        try:
            root.addHandler(_otlp_log_handler())
        except Exception as e:
            root.warning("OTLP log export disabled", extra={"error": str(e)})

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

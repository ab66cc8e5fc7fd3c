"""Monitoring and observability setup.

Instruments below come from the global OpenTelemetry API. They stay no-op
proxies until ``init_telemetry`` installs the SDK providers, so services and
tests record metrics freely without a collector running.
"""
import logging

from opentelemetry import metrics, trace

from config import OTEL_EXPORTER_OTLP_ENDPOINT, PYROSCOPE_SERVER, SERVICE_NAME

logger = logging.getLogger(__name__)

METRIC_EXPORT_INTERVAL_MS = 5000


def init_telemetry() -> None:
    """Export traces and metrics to the OTLP collector at ``OTEL_EXPORTER_OTLP_ENDPOINT``."""
    from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    from opentelemetry.sdk.metrics import MeterProvider
    from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    resource = Resource.create({"service.name": SERVICE_NAME})

    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=OTEL_EXPORTER_OTLP_ENDPOINT, insecure=True))
    )
    trace.set_tracer_provider(tracer_provider)

    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=OTEL_EXPORTER_OTLP_ENDPOINT, insecure=True),
        export_interval_millis=METRIC_EXPORT_INTERVAL_MS
    )
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[reader]))

    logger.info("Telemetry export enabled", extra={"endpoint": OTEL_EXPORTER_OTLP_ENDPOINT})


def init_profiling() -> None:
    """Start Pyroscope continuous profiling if a server address is configured."""
    if not PYROSCOPE_SERVER:
        return
    try:
        import pyroscope

        pyroscope.configure(application_name=SERVICE_NAME, server_address=PYROSCOPE_SERVER)
    except Exception as e:
        logger.warning("Profiling disabled", extra={"error": str(e)})
        return
    logger.info("Profiling enabled", extra={"server": PYROSCOPE_SERVER})


meter = metrics.get_meter(SERVICE_NAME)


def _counter(name: str, description: str):
    return meter.create_counter(f"storefront.{name}", description=description, unit="1")


# Catalog
product_views_counter = _counter("products.views", "Catalog listings served")
product_detail_views_counter = _counter("products.detail_views", "Product detail pages served, by category")
admin_product_changes_counter = _counter("admin.product_changes", "Admin product changes, by action")

# Cart
cart_additions_counter = _counter("cart.additions", "Successful add-to-cart calls, by category")
cart_rejections_counter = _counter("cart.rejections", "Add-to-cart calls refused by a business rule, by reason")

# Orders
orders_placed_counter = _counter("orders.placed", "Orders placed, by shipping country")
order_amount_histogram = meter.create_histogram(
    "storefront.orders.amount",
    description="Order total including shipping and tax",
    unit="USD"
)

# Sessions and traffic
sessions_created_counter = _counter("sessions.created", "Anonymous sessions issued")
rate_limit_exceeded_counter = _counter("rate_limit.exceeded", "Requests refused by the rate limiter")

from prometheus_client.core import (
    Counter,
    Histogram,
)

from gitops_interceptor.models import PushedObjectStatus

push_counter = Counter(
    name="gitops_interceptor_push_total",
    documentation="Pushes of intercepted objects by outcome",
    labelnames=["status"],
)

push_retries = Counter(
    name="gitops_interceptor_push_retries_total",
    documentation="Pushes repeated because the branch moved on the remote",
)

push_time = Histogram(
    name="gitops_interceptor_push_seconds",
    documentation="Duration of a push including retries",
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, float("inf")),
)


def status_label(status: PushedObjectStatus | None) -> str:
    return status.name.lower() if status else "failed"

"""
Helpers para registrar métricas Prometheus una sola vez por proceso.
"""
from typing import Iterable

from prometheus_client import REGISTRY, Counter, Histogram

_counter_cache: dict[tuple[str, tuple[str, ...]], Counter] = {}
_hist_cache: dict[tuple[str, tuple[str, ...]], Histogram] = {}


def _registered(name: str):
    # prometheus_client no expone búsqueda por nombre; se consulta el mapa interno.
    for collector, names in REGISTRY._collector_to_names.items():
        if name in names or f"{name}_total" in names:
            return collector
    return None


def get_counter(name: str, doc: str, labelnames: Iterable[str] = ()) -> Counter:
    key = (name, tuple(labelnames))
    if key in _counter_cache:
        return _counter_cache[key]
    try:
        metric = Counter(name, doc, list(labelnames))
    except ValueError:
        # La métrica ya existe en el registro (común en tests con recarga de módulos)
        metric = _registered(name)
        if metric is None:
            raise
    _counter_cache[key] = metric
    return metric


def get_histogram(
    name: str,
    doc: str,
    labelnames: Iterable[str] = (),
    buckets: Iterable[float] | None = None,
) -> Histogram:
    key = (name, tuple(labelnames))
    if key in _hist_cache:
        return _hist_cache[key]
    try:
        if buckets:
            metric = Histogram(name, doc, list(labelnames), buckets=list(buckets))
        else:
            metric = Histogram(name, doc, list(labelnames))
    except ValueError:
        metric = _registered(name)
        if metric is None:
            raise
    _hist_cache[key] = metric
    return metric

"""
Prometheus metrics for monitoring the geocover service.
"""
from prometheus_client import Counter, Histogram, Gauge

# Request metrics
cover_requests_total = Counter(
    'cover_requests_total',
    'Total number of cover requests',
    ['shape', 'status']
)

codec_requests_total = Counter(
    'codec_requests_total',
    'Total number of encode/decode/navigation requests',
    ['endpoint', 'status']
)

# Latency metrics
request_duration_seconds = Histogram(
    'request_duration_seconds',
    'Request latency in seconds',
    ['endpoint']
)

# Engine metrics
cover_result_size = Histogram(
    'cover_result_size',
    'Number of geohashes returned per cover',
    ['shape'],
    buckets=(1, 10, 100, 1000, 10000, 100000)
)

cover_refinement_passes = Histogram(
    'cover_refinement_passes',
    'Refinement passes the engine needed per polygon cover',
    buckets=(0, 1, 2, 3, 4, 6, 8, 12)
)

cover_fallback_total = Counter(
    'cover_fallback_total',
    'Covers that fell back to partially contained geohashes'
)

# Configuration metrics
api_max_cover_length = Gauge(
    'api_max_cover_length',
    'Largest cover length accepted by the API'
)

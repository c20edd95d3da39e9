"""
Prometheus metrics definitions.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Upload metrics
uploads_presigned_total = Counter(
    'uploads_presigned_total',
    'Total upload plans issued',
    ['strategy']
)

upload_parts_presigned_total = Counter(
    'upload_parts_presigned_total',
    'Total multipart part URLs presigned'
)

multipart_completed_total = Counter(
    'multipart_completed_total',
    'Total multipart uploads completed'
)

multipart_aborted_total = Counter(
    'multipart_aborted_total',
    'Total multipart uploads aborted'
)

storage_errors_total = Counter(
    'storage_errors_total',
    'Total object storage failures',
    ['operation']
)

presign_duration_seconds = Histogram(
    'presign_duration_seconds',
    'Upload plan build duration in seconds',
    ['strategy'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

# Image variant metrics
image_variants_generated_total = Counter(
    'image_variants_generated_total',
    'Total resized image variants generated',
    ['source']
)

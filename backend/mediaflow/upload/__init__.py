"""
Upload strategy engine.

Validates presign requests against upload profiles, derives object keys,
chooses single or multipart uploads and relays multipart completion/abort.
"""
from mediaflow.upload.keys import build_object_key, generate_shard
from mediaflow.upload.presign import UploadService
from mediaflow.upload.strategy import Strategy, select_strategy

__all__ = [
    "UploadService",
    "Strategy",
    "select_strategy",
    "build_object_key",
    "generate_shard",
]

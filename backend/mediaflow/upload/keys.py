"""
Object key derivation.

Keys are a pure function of (template, key_base, ext, shard): the same
inputs always produce the same key, so a client can recompute it.
"""
import hashlib


def generate_shard(key_base: str) -> str:
    """
    Derive a 2-hex-character shard from key_base.

    First byte of the SHA-1 digest of the UTF-8 bytes. Only spreads keys
    across prefixes; it is not a security control.
    """
    digest = hashlib.sha1(key_base.encode("utf-8")).digest()
    return f"{digest[0]:02x}"


def build_object_key(template: str, key_base: str, ext: str, shard: str) -> str:
    """
    Resolve a storage path template.

    Supported placeholders: {key_base}, {ext}, {shard} and the optional
    {shard?}. With an empty shard, {shard?} is removed together with one
    adjacent slash so no empty path segment remains. Anything else in the
    template is left as-is.

    Example:
        build_object_key("originals/{shard?}/{key_base}.{ext}", "a", "jpg", "")
        -> "originals/a.jpg"
    """
    key = template.replace("{key_base}", key_base).replace("{ext}", ext)

    if shard:
        return key.replace("{shard?}", shard).replace("{shard}", shard)

    key = key.replace("/{shard?}", "")
    key = key.replace("{shard?}/", "")
    return key.replace("{shard?}", "")

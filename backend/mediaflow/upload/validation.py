"""
Presign request validation.

All checks are pure and run before any storage call, so an invalid request
never has side effects.
"""
from mediaflow.errors import BadRequest, MimeNotAllowed, SizeTooLarge
from mediaflow.profiles import Profile, ProfileConfig
from mediaflow.schemas.upload import PresignRequest

_REQUIRED_FIELDS = ("key_base", "ext", "mime")


def check_required_fields(request: PresignRequest) -> None:
    for field in _REQUIRED_FIELDS:
        if not getattr(request, field):
            raise BadRequest(f"{field} is required")
    if request.size_bytes <= 0:
        raise BadRequest("size_bytes must be greater than 0")
    if not request.kind:
        raise BadRequest("kind is required")
    if not request.profile:
        raise BadRequest("profile is required")


def resolve_profile(profiles: ProfileConfig, name: str) -> Profile:
    profile = profiles.get_profile(name)
    if profile is None:
        raise BadRequest(
            f"No configuration for profile: {name}",
            hint="Configure profile in your storage config",
        )
    return profile


def is_mime_allowed(mime: str, allowed_mimes: list[str]) -> bool:
    # Exact, case-sensitive match: no wildcards, no normalization
    return mime in allowed_mimes


def validate_against_profile(request: PresignRequest, profile: Profile) -> None:
    if profile.kind != request.kind:
        raise BadRequest(f"Kind mismatch: expected {profile.kind}, got {request.kind}")

    if not is_mime_allowed(request.mime, profile.allowed_mimes):
        raise MimeNotAllowed(f"mime type not allowed: {request.mime}")

    if request.size_bytes > profile.size_max_bytes:
        raise SizeTooLarge(
            f"file size exceeds maximum: {request.size_bytes} > {profile.size_max_bytes}"
        )


def validate_presign_request(request: PresignRequest, profiles: ProfileConfig) -> Profile:
    """
    Validate a presign request and return its resolved profile.

    Raises:
        BadRequest: Missing fields, unknown profile or kind mismatch
        MimeNotAllowed: MIME not in the profile allow-list
        SizeTooLarge: size_bytes above the profile maximum
    """
    check_required_fields(request)
    profile = resolve_profile(profiles, request.profile)
    validate_against_profile(request, profile)
    return profile

"""Request signing for the upload API."""
import hashlib
from typing import Any, Mapping


def serialize_param(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def generate_signature(params: Mapping[str, Any], api_secret: str) -> str:
    """
    Generate the signature that must accompany an upload request.

    Empty values are dropped, the remaining ``key=value`` pairs are sorted and
    joined with ``&``, the secret is appended and the result is hashed with
    SHA-256. Key order in ``params`` does not affect the output.

    Args:
        params: Parameters sent with the request (without file, api_key,
            resource_type and cloud_name)
        api_secret: Account API secret

    Returns:
        Hex digest
    """
    pairs = sorted(
        f"{key}={serialize_param(value)}"
        for key, value in params.items()
        if value is not None and serialize_param(value) != ""
    )
    to_sign = "&".join(pairs) + api_secret
    return hashlib.sha256(to_sign.encode("utf-8")).hexdigest()

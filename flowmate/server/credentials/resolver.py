"""
Credential Resolver - merges credential sources for a (user, platform).

Sources, merged field by field:
1. explicit  - values supplied by the caller for this request
2. stored    - the user's encrypted CredentialRecord
3. env       - <PLATFORM>_<FIELD> environment variables

Default precedence is explicit > stored > env. App-level OAuth client
credentials use ``prefer_environment=True`` (explicit > env > stored) so a
deployment's configured app wins over a user-stored one. There the
environment counts only when it supplies every required field; otherwise the
stored record is used as a unit.

Nothing decrypted is cached: every call reads persistence afresh and the
returned dict belongs to the caller.
"""

import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Tuple

from flowmate.server.errors import CredentialMissing, NotFound
from .platforms import PlatformSpec, get_platform_spec, list_platforms

logger = logging.getLogger("flowmate.credentials")


def _normalize(spec: PlatformSpec, value: Any = None, fields: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Map a single opaque value onto the platform's only field."""
    result = {k: v for k, v in (fields or {}).items() if v not in (None, "")}
    if value not in (None, ""):
        keys = spec.field_keys()
        target = keys[0] if len(keys) == 1 else "value"
        result.setdefault(target, value)
    return result


def _explicit_fields(spec: PlatformSpec, explicit: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if not explicit:
        return {}
    explicit = dict(explicit)
    value = explicit.pop("value", None)
    nested = explicit.pop("fields", None) or {}
    return _normalize(spec, value, {**explicit, **nested})


class CredentialResolver:
    """
    Resolves the credential fields a module needs.

    Args:
        credential_repo: CredentialRepository (or None to use only explicit/env)
        environ: Environment mapping; defaults to os.environ at call time
    """

    def __init__(self, credential_repo=None, environ: Optional[Mapping[str, str]] = None):
        self.credential_repo = credential_repo
        self._environ = environ

    @property
    def environ(self) -> Mapping[str, str]:
        return self._environ if self._environ is not None else os.environ

    def _spec(self, platform: str) -> PlatformSpec:
        spec = get_platform_spec(platform)
        if spec is None:
            raise NotFound(f"Unknown credential platform '{platform}'")
        return spec

    def _env_fields(self, spec: PlatformSpec) -> Dict[str, Any]:
        result = {}
        for f in spec.fields:
            value = self.environ.get(f.env_var(spec.platform.value))
            if value:
                result[f.key] = value
        return result

    def _stored_fields(self, spec: PlatformSpec, user_id: Optional[str]) -> Dict[str, Any]:
        if not user_id or self.credential_repo is None:
            return {}
        record = self.credential_repo.get(user_id, spec.platform.value)
        if record is None:
            return {}
        return _normalize(spec, record.value, record.fields)

    def resolve(
        self,
        user_id: Optional[str],
        platform: str,
        explicit: Optional[Mapping[str, Any]] = None,
        prefer_environment: bool = False,
    ) -> Dict[str, Any]:
        """
        Produce the merged credential fields for a platform.

        Args:
            user_id: Owner of stored credentials (None skips the stored source)
            platform: Platform id from the catalog
            explicit: Caller-supplied {field: value}, or {"value": ...}
            prefer_environment: Rank environment above stored credentials

        Returns:
            {field: value} with every required field present

        Raises:
            NotFound: Unknown platform
            CredentialMissing: A required field has no source
            ConfigurationError: Stored credential cannot be decrypted
        """
        spec = self._spec(platform)
        required = spec.required_fields

        explicit_fields = _explicit_fields(spec, explicit)
        env_fields = self._env_fields(spec)

        if prefer_environment:
            # Environment and stored record are each taken whole; an incomplete
            # environment pair never mixes with stored fields
            if all(k in env_fields for k in required):
                stored_fields = {}
            else:
                env_fields = {}
                stored_fields = self._stored_fields(spec, user_id)
        elif set(spec.field_keys()).issubset(explicit_fields):
            stored_fields = {}
        else:
            stored_fields = self._stored_fields(spec, user_id)

        if prefer_environment:
            sources: List[Tuple[str, Dict[str, Any]]] = [
                ("explicit", explicit_fields), ("env", env_fields), ("stored", stored_fields)
            ]
        else:
            sources = [("explicit", explicit_fields), ("stored", stored_fields), ("env", env_fields)]

        merged: Dict[str, Any] = {}
        origin: Dict[str, str] = {}
        for source_name, fields in reversed(sources):
            for key, value in fields.items():
                merged[key] = value
                origin[key] = source_name

        missing = [k for k in required if k not in merged]
        if missing:
            logger.warning(
                f"[CREDENTIALS] {platform} for user {user_id}: missing {', '.join(missing)}"
            )
            raise CredentialMissing(platform, missing)

        logger.debug(
            f"[CREDENTIALS] Resolved {platform} for user {user_id} "
            f"({', '.join(f'{k}<-{origin[k]}' for k in sorted(origin))})"
        )
        return merged

    def validate_submission(
        self,
        platform: str,
        value: Optional[str] = None,
        fields: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Check a user's credential submission against the platform schema.

        Returns:
            Normalized {field: value}

        Raises:
            ValueError: Unknown platform, unknown field or missing required field
        """
        spec = get_platform_spec(platform)
        if spec is None:
            raise ValueError(f"Unknown platform '{platform}'")

        unknown = sorted(set(fields or {}) - set(spec.field_keys()))
        if unknown:
            raise ValueError(f"Unknown field(s) for {platform}: {', '.join(unknown)}")

        normalized = _normalize(spec, value, fields)
        if "value" in normalized:
            raise ValueError(f"Platform '{platform}' has several fields; submit them by name")

        missing = [k for k in spec.required_fields if k not in normalized]
        if missing:
            raise ValueError(f"Missing required field(s) for {platform}: {', '.join(missing)}")
        return normalized

    @staticmethod
    def platforms() -> List[Dict[str, Any]]:
        return [spec.to_dict() for spec in list_platforms()]

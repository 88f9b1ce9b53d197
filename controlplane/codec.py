"""
Schema Decoder Module

Converts resource objects between their canonical (unstructured) form, the
variant-agnostic JSON intermediate encoding, and each schema variant's typed
models.

- SchemaDecoder: one variant's static kind registry plus decode()
- to_unstructured / encode: canonical form and intermediate encoding
- unmarshal_list: bulk decode of a multi-document YAML/JSON blob
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from . import cilium_types, core_types, slim_types
from .errors import MalformedObjectError
from .models import AnyObject, KubeObject, Unstructured

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemaDecoder:
    """
    Decoding profile for one schema variant.

    decode() never touches shared state: the result depends only on the raw
    payload and this variant's static kind registry.
    """
    name: str
    kinds: Mapping[tuple[str, str], type[KubeObject]]

    def recognizes(self, api_version: str, kind: str) -> bool:
        return (api_version, kind) in self.kinds

    def decode(self, raw: bytes) -> tuple[KubeObject | None, bool]:
        """
        Parse a JSON payload into this variant's typed representation.

        Returns:
            (obj, True) when the payload's kind is registered for this variant,
            (None, False) when it is not.

        Raises:
            MalformedObjectError: if the payload is not a JSON object, has no
                apiVersion/kind, or fails validation against a registered model.
        """
        fields = _load_json(raw)
        api_version, kind = _require_type_meta(fields)

        model = self.kinds.get((api_version, kind))
        if model is None:
            return None, False

        try:
            return model.model_validate(fields), True
        except ValidationError as exc:
            raise MalformedObjectError(
                f"{self.name} decoder failed to decode {kind} ({api_version})",
                details={"variant": self.name, "errors": exc.errors(include_url=False)},
            ) from exc


def default_decoders() -> list[SchemaDecoder]:
    """Return the decoders in dispatch priority order: core, slim, cilium."""
    return [
        SchemaDecoder("core", core_types.KINDS),
        SchemaDecoder("slim", slim_types.KINDS),
        SchemaDecoder("cilium", cilium_types.KINDS),
    ]


# =============================================================================
# CANONICAL FORM AND INTERMEDIATE ENCODING
# =============================================================================

def to_unstructured(obj: AnyObject) -> Unstructured:
    """Convert a typed object of any variant, or a plain mapping, to canonical form."""
    if isinstance(obj, KubeObject):
        return obj.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(obj, Mapping):
        return dict(obj)
    raise MalformedObjectError(
        f"cannot convert {type(obj).__name__} to unstructured form",
        details={"type": type(obj).__name__},
    )


def encode(obj: AnyObject) -> bytes:
    """
    Encode an object as JSON bytes.

    Key order follows the canonical form so every variant decodes the same input.
    Values JSON cannot represent natively, such as YAML timestamps, become strings.
    """
    try:
        return json.dumps(to_unstructured(obj), default=str).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise MalformedObjectError(f"failed to marshal {type(obj).__name__} to JSON") from exc


def _load_json(raw: bytes) -> dict[str, Any]:
    try:
        fields = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedObjectError(f"payload is not valid JSON: {exc}") from exc
    if not isinstance(fields, dict):
        raise MalformedObjectError(
            f"payload must be a JSON object, got {type(fields).__name__}"
        )
    return fields


def _require_type_meta(fields: Mapping[str, Any]) -> tuple[str, str]:
    api_version = fields.get("apiVersion")
    kind = fields.get("kind")
    if not isinstance(kind, str) or not kind:
        raise MalformedObjectError("Object 'Kind' is missing", details={"object": dict(fields)})
    if not isinstance(api_version, str) or not api_version:
        raise MalformedObjectError(
            f"Object 'apiVersion' is missing for kind {kind}", details={"kind": kind}
        )
    metadata = fields.get("metadata")
    if metadata is not None and not isinstance(metadata, Mapping):
        raise MalformedObjectError(
            f"Object metadata for kind {kind} must be a mapping, got {type(metadata).__name__}",
            details={"kind": kind},
        )
    return api_version, kind


# =============================================================================
# BULK DECODE
# =============================================================================

def unmarshal_list(data: bytes | str) -> list[Unstructured]:
    """
    Decode a multi-document YAML (or JSON) blob into canonical objects.

    Empty documents are skipped. A document whose kind ends in 'List' is
    expanded into its items, e.g. the output of 'kubectl get -o yaml'.

    Raises:
        MalformedObjectError: if the blob does not parse, or a document is not
            a mapping with apiVersion and kind.
    """
    try:
        documents = list(yaml.safe_load_all(data))
    except yaml.YAMLError as exc:
        raise MalformedObjectError(f"failed to parse resource documents: {exc}") from exc

    objects: list[Unstructured] = []
    for index, doc in enumerate(documents):
        if doc is None:
            continue
        if not isinstance(doc, dict):
            raise MalformedObjectError(
                f"document {index} is a {type(doc).__name__}, expected a mapping",
                details={"document": index},
            )
        _, kind = _require_type_meta(doc)
        if kind.endswith("List") and "items" in doc:
            for item in doc.get("items") or []:
                if not isinstance(item, dict):
                    raise MalformedObjectError(
                        f"document {index} contains a non-mapping item",
                        details={"document": index},
                    )
                _require_type_meta(item)
                objects.append(item)
        else:
            objects.append(doc)

    logger.debug("unmarshal_list: decoded %d objects from %d documents", len(objects), len(documents))
    return objects

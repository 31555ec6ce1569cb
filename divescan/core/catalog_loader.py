"""Catalog loading and validation for the packaged YAML descriptor and rule tables."""

from __future__ import annotations

import functools
import json
import logging
import re
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from divescan.core.errors import CatalogLoadError, CatalogValidationError
from divescan.core.model import DeviceDescriptor, Family, Transport

LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise CatalogValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class BLENameRule:
    pattern: re.Pattern[str]
    vendor: str
    product: str | None = None


@dataclass(frozen=True)
class ClassicNameRule:
    prefix: str
    vendor: str
    product: str | None = None


@dataclass(frozen=True)
class ServiceRule:
    uuid: str
    vendor: str
    label: str | None = None


@dataclass(frozen=True)
class SerialBridge:
    vendor_id: int
    product_id: int
    chip: str


@dataclass(frozen=True)
class USBProduct:
    vendor_id: int
    product_id: int
    vendor: str
    product: str


@dataclass(frozen=True)
class Catalog:
    descriptors: tuple[DeviceDescriptor, ...]
    ble_name_rules: tuple[BLENameRule, ...]
    classic_name_rules: tuple[ClassicNameRule, ...]
    service_rules: tuple[ServiceRule, ...]
    ignored_services: frozenset[str]
    usb_serial_bridges: tuple[SerialBridge, ...]
    usb_hid_devices: tuple[USBProduct, ...]
    usb_direct_devices: tuple[USBProduct, ...]
    warnings: tuple[str, ...] = ()


def load_yaml_document(
    path: Traversable,
    error_cls: type[Exception] = CatalogValidationError,
    load_error_cls: type[Exception] = CatalogLoadError,
) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise load_error_cls(f"Could not read {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise error_cls(f"Invalid YAML in {path}: {exc}") from exc
    except CatalogValidationError as exc:
        raise error_cls(f"{exc} ({path})") from exc

    if not isinstance(loaded, dict):
        raise error_cls(f"{path} must contain a mapping at root")
    return loaded


def load_schema_validator(schema_name: str) -> Any:
    schema_text = resources.files("divescan.schemas").joinpath(schema_name).read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def validate_document(
    doc: dict[str, Any],
    schema_name: str,
    source: object,
    error_cls: type[Exception] = CatalogValidationError,
) -> None:
    validator = load_schema_validator(schema_name)
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise error_cls(f"Schema validation failed for {source}{where}: {exc.message}") from exc


def _parse_transports(names: list[str], *, context: str) -> Transport:
    flags = Transport.NONE
    for name in names:
        try:
            flags |= Transport[name]
        except KeyError:
            raise CatalogValidationError(f"{context}: unknown transport '{name}'") from None
    if not flags:
        raise CatalogValidationError(f"{context}: transport set must not be empty")
    return flags


def _parse_family(name: str, *, context: str) -> Family:
    try:
        return Family[name]
    except KeyError:
        raise CatalogValidationError(f"{context}: unknown family '{name}'") from None


def build_descriptors(
    entries: list[dict[str, Any]],
) -> tuple[tuple[DeviceDescriptor, ...], tuple[str, ...]]:
    descriptors: list[DeviceDescriptor] = []
    warnings: list[str] = []
    seen: set[str] = set()

    for entry in entries:
        context = f"{entry['vendor']} {entry['product']}"
        descriptor = DeviceDescriptor(
            vendor=entry["vendor"],
            product=entry["product"],
            model=int(entry["model"]),
            family=_parse_family(entry["family"], context=context),
            transports=_parse_transports(entry["transports"], context=context),
        )
        if descriptor.key in seen:
            warning = f"Duplicate descriptor '{context}' ignored; first entry wins"
            LOGGER.warning(warning)
            warnings.append(warning)
            continue
        seen.add(descriptor.key)
        descriptors.append(descriptor)

    return tuple(descriptors), tuple(warnings)


def _compile_pattern(pattern: str, *, context: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise CatalogValidationError(f"{context}: invalid pattern '{pattern}': {exc}") from exc


def build_catalog(descriptor_doc: dict[str, Any], rules_doc: dict[str, Any]) -> Catalog:
    """Convert validated YAML documents into an immutable :class:`Catalog`."""
    descriptors, warnings = build_descriptors(descriptor_doc["descriptors"])

    return Catalog(
        descriptors=descriptors,
        ble_name_rules=tuple(
            BLENameRule(
                pattern=_compile_pattern(rule["pattern"], context="ble_name_rules"),
                vendor=rule["vendor"],
                product=rule.get("product"),
            )
            for rule in rules_doc["ble_name_rules"]
        ),
        classic_name_rules=tuple(
            ClassicNameRule(prefix=rule["prefix"], vendor=rule["vendor"], product=rule.get("product"))
            for rule in rules_doc["classic_name_rules"]
        ),
        service_rules=tuple(
            ServiceRule(uuid=rule["uuid"].lower(), vendor=rule["vendor"], label=rule.get("label"))
            for rule in rules_doc["service_rules"]
        ),
        ignored_services=frozenset(entry["uuid"].lower() for entry in rules_doc["ignored_services"]),
        usb_serial_bridges=tuple(
            SerialBridge(vendor_id=entry["vendor_id"], product_id=entry["product_id"], chip=entry["chip"])
            for entry in rules_doc["usb_serial_bridges"]
        ),
        usb_hid_devices=tuple(USBProduct(**entry) for entry in rules_doc["usb_hid_devices"]),
        usb_direct_devices=tuple(USBProduct(**entry) for entry in rules_doc["usb_direct_devices"]),
        warnings=warnings,
    )


@functools.cache
def load_catalog() -> Catalog:
    root = resources.files("divescan.catalog")

    descriptor_path = root.joinpath("descriptors.yaml")
    descriptor_doc = load_yaml_document(descriptor_path)
    validate_document(descriptor_doc, "catalog.schema.json", descriptor_path)

    rules_path = root.joinpath("rules.yaml")
    rules_doc = load_yaml_document(rules_path)
    validate_document(rules_doc, "rules.schema.json", rules_path)

    catalog = build_catalog(descriptor_doc, rules_doc)
    LOGGER.debug(
        "Loaded %d descriptors and %d BLE name rules",
        len(catalog.descriptors),
        len(catalog.ble_name_rules),
    )
    return catalog

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

import httpx

from configuration_state import MonogramType
from option_catalog import (
    ButtonLayoutRef,
    CatalogError,
    CatalogUnavailable,
    CategoryDefinition,
    CategoryKind,
    CategoryRole,
    MaterialParams,
    OptionCatalog,
    OptionValue,
    RenderEffects,
    VisualAttributes,
    empty_catalog,
    make_catalog,
)
from pricing_engine import GarmentPriceRules
from sample_catalogs import load_sample_catalog, sample_price_rules

logger = logging.getLogger(__name__)

CATALOG_FILENAME = "normalized_catalog.json"


@dataclass(frozen=True)
class NormalizedCatalog:
    catalog: OptionCatalog
    price_rules: Optional[GarmentPriceRules]
    source: str


@dataclass(frozen=True)
class CatalogLoadResult:
    catalog: OptionCatalog
    available: bool
    reason: Optional[str] = None
    price_rules: Optional[GarmentPriceRules] = None


class CatalogLoader(Protocol):
    def load(self, product_id: str) -> OptionCatalog:
        ...

    def load_normalized(self, product_id: str) -> NormalizedCatalog:
        ...


def _decimal(raw: object) -> Optional[Decimal]:
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str, Decimal)):
        return None
    try:
        d = Decimal(str(raw).strip())
    except InvalidOperation:
        return None
    return d if d.is_finite() else None


def _text(raw: object) -> Optional[str]:
    return raw.strip() if isinstance(raw, str) and raw.strip() else None


def _dict(raw: object) -> Dict[Any, Any]:
    return raw if isinstance(raw, dict) else {}


def _str_tuple(raw: object) -> Tuple[str, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(s.strip() for s in raw if isinstance(s, str) and s.strip())


def _material(raw: object) -> Optional[MaterialParams]:
    if not isinstance(raw, dict):
        return None
    defaults = MaterialParams()
    out: Dict[str, float] = {}
    for key in ("roughness", "metalness", "opacity"):
        val = raw.get(key, getattr(defaults, key))
        if isinstance(val, bool) or not isinstance(val, (int, float)):
            return None
        out[key] = float(val)
    return MaterialParams(**out)


def _value_from_normalized(raw: Mapping[str, Any]) -> Optional[OptionValue]:
    value_id = _text(raw.get("id"))
    if value_id is None:
        return None
    price = _decimal(raw.get("price_delta", 0))
    if price is None:
        return None

    color = _text(raw.get("color"))
    material = _material(raw.get("material"))
    visual = VisualAttributes(color=color, material=material) if (color or material) else None

    show = _str_tuple(raw.get("show"))
    hide = _str_tuple(raw.get("hide"))
    effects = RenderEffects(show=show, hide=hide) if (show or hide) else None

    layout: Optional[ButtonLayoutRef] = None
    layout_raw = raw.get("button_layout")
    if isinstance(layout_raw, dict):
        count = layout_raw.get("count")
        layout_id = _text(layout_raw.get("layout_id"))
        if isinstance(count, int) and not isinstance(count, bool) and layout_id is not None:
            layout = ButtonLayoutRef(count=count, layout_id=layout_id)

    return OptionValue(
        id=value_id,
        name=_text(raw.get("name")) or value_id,
        price_delta=price,
        visual=visual,
        render_effects=effects,
        is_none=raw.get("is_none") is True,
        part_id=_text(raw.get("part_id")),
        button_layout=layout,
    )


def _category_from_normalized(raw: Mapping[str, Any]) -> Optional[CategoryDefinition]:
    category_id = _text(raw.get("id"))
    if category_id is None:
        return None
    try:
        kind = CategoryKind(raw.get("kind", CategoryKind.COMPONENT.value))
        role = CategoryRole(raw.get("role", CategoryRole.OTHER.value))
    except ValueError:
        logger.warning("Skipping category %r: unknown kind/role", category_id)
        return None

    values: List[OptionValue] = []
    values_raw = raw.get("values")
    if isinstance(values_raw, list):
        for v in values_raw:
            if not isinstance(v, dict):
                continue
            value = _value_from_normalized(v)
            if value is None:
                logger.warning("Skipping malformed value in category %r: %r", category_id, v)
                continue
            values.append(value)

    return CategoryDefinition(
        id=category_id,
        display_name=_text(raw.get("display_name")) or category_id,
        kind=kind,
        values=tuple(values),
        role=role,
        family=_text(raw.get("family")),
        target=_text(raw.get("target")),
        default_value_id=_text(raw.get("default_value_id")),
    )


def catalog_from_normalized(data: Mapping[str, Any]) -> OptionCatalog:
    """
    Parse a normalized catalog document.

    Malformed rows are skipped; the assembled catalog is then validated, so structural
    problems still raise `CatalogError`.
    """
    if not isinstance(data, Mapping):
        raise CatalogError("Expected a JSON object for the catalog")
    product_id = _text(data.get("product_id"))
    if product_id is None:
        raise CatalogError("Missing/invalid 'product_id'")

    categories: List[CategoryDefinition] = []
    categories_raw = data.get("categories", [])
    if isinstance(categories_raw, list):
        for c in categories_raw:
            if not isinstance(c, dict):
                continue
            category = _category_from_normalized(c)
            if category is not None:
                categories.append(category)

    thread_colors: Dict[str, str] = {}
    tc_raw = data.get("thread_colors", {})
    if isinstance(tc_raw, dict):
        for k, v in tc_raw.items():
            if isinstance(k, str) and k.strip() and isinstance(v, str):
                thread_colors[k.strip()] = v.strip()

    return make_catalog(
        product_id=product_id,
        garment_type=_text(data.get("garment_type")) or "unknown",
        display_name=_text(data.get("display_name")) or product_id,
        categories=categories,
        monogram_positions=_str_tuple(data.get("monogram_positions")),
        thread_colors=thread_colors,
    )


def _value_to_normalized(v: OptionValue) -> Dict[str, Any]:
    out: Dict[str, Any] = {"id": v.id, "name": v.name, "price_delta": str(v.price_delta)}
    if v.visual is not None and v.visual.color:
        out["color"] = v.visual.color
    if v.visual is not None and v.visual.material is not None:
        m = v.visual.material
        out["material"] = {"roughness": m.roughness, "metalness": m.metalness, "opacity": m.opacity}
    if v.render_effects is not None:
        out["show"] = list(v.render_effects.show)
        out["hide"] = list(v.render_effects.hide)
    if v.is_none:
        out["is_none"] = True
    if v.part_id:
        out["part_id"] = v.part_id
    if v.button_layout is not None:
        out["button_layout"] = {"count": v.button_layout.count, "layout_id": v.button_layout.layout_id}
    return out


def catalog_to_normalized(catalog: OptionCatalog) -> Dict[str, Any]:
    return {
        "product_id": catalog.product_id,
        "garment_type": catalog.garment_type,
        "display_name": catalog.display_name,
        "monogram_positions": list(catalog.monogram_positions),
        "thread_colors": dict(catalog.thread_colors),
        "categories": [
            {
                "id": c.id,
                "display_name": c.display_name,
                "kind": c.kind.value,
                "role": c.role.value,
                "family": c.family,
                "target": c.target,
                "default_value_id": c.default_value_id,
                "values": [_value_to_normalized(v) for v in c.values],
            }
            for c in catalog.categories.values()
        ],
    }


def price_rules_from_normalized(data: Mapping[str, Any]) -> Optional[GarmentPriceRules]:
    raw = data.get("price_rules")
    if not isinstance(raw, dict):
        return None
    base_price = _decimal(raw.get("base_price"))
    if base_price is None:
        raise CatalogError("price_rules.base_price is missing or not a number")

    kwargs: Dict[str, Any] = {"base_price": base_price}
    for key in ("custom_measurement_surcharge", "custom_lining_surcharge", "no_lining_discount"):
        if key in raw:
            amount = _decimal(raw[key])
            if amount is None:
                raise CatalogError(f"price_rules.{key} is not a number")
            kwargs[key] = amount

    by_type: Dict[MonogramType, Decimal] = {}
    for k, v in _dict(raw.get("monogram_fee_by_type")).items():
        fee = _decimal(v)
        try:
            monogram_type = MonogramType(k)
        except ValueError:
            continue
        if fee is not None:
            by_type[monogram_type] = fee
    by_position: Dict[str, Decimal] = {}
    for k, v in _dict(raw.get("monogram_fee_by_position")).items():
        fee = _decimal(v)
        if isinstance(k, str) and fee is not None:
            by_position[k] = fee

    currency = _text(raw.get("currency"))
    if currency is not None:
        kwargs["currency"] = currency.upper()
    return GarmentPriceRules(monogram_fee_by_type=by_type, monogram_fee_by_position=by_position, **kwargs)


def price_rules_to_normalized(rules: GarmentPriceRules) -> Dict[str, Any]:
    return {
        "base_price": str(rules.base_price),
        "custom_measurement_surcharge": str(rules.custom_measurement_surcharge),
        "custom_lining_surcharge": str(rules.custom_lining_surcharge),
        "no_lining_discount": str(rules.no_lining_discount),
        "monogram_fee_by_type": {k.value: str(v) for k, v in rules.monogram_fee_by_type.items()},
        "monogram_fee_by_position": {k: str(v) for k, v in rules.monogram_fee_by_position.items()},
        "currency": rules.currency,
    }


def normalized_from_document(data: Any, *, source: str) -> NormalizedCatalog:
    if not isinstance(data, dict):
        raise CatalogError(f"Expected JSON object in {source}")
    return NormalizedCatalog(
        catalog=catalog_from_normalized(data),
        price_rules=price_rules_from_normalized(data),
        source=source,
    )


def find_normalized_catalogs(root: Path) -> List[Path]:
    return sorted(root.glob(f"**/{CATALOG_FILENAME}"))


def load_normalized_catalog(path: Path) -> NormalizedCatalog:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogUnavailable(f"Cannot read catalog file {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise CatalogUnavailable(f"Catalog file {path} is not UTF-8: {e}") from e
    try:
        data = json.loads(text)
    except ValueError as e:
        raise CatalogUnavailable(f"Catalog file {path} is not valid JSON: {e}") from e
    return normalized_from_document(data, source=str(path))


def write_normalized_catalog(
    root: Path,
    catalog: OptionCatalog,
    price_rules: Optional[GarmentPriceRules] = None,
) -> Path:
    doc = catalog_to_normalized(catalog)
    if price_rules is not None:
        doc["price_rules"] = price_rules_to_normalized(price_rules)
    out_path = root / catalog.product_id / CATALOG_FILENAME
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(doc, indent=2) + "\n", encoding="utf-8")
    return out_path


class FileCatalogLoader:
    """
    Reads `<root>/<product_id>/normalized_catalog.json`.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, product_id: str) -> Path:
        return self.root / product_id / CATALOG_FILENAME

    def load_normalized(self, product_id: str) -> NormalizedCatalog:
        path = self.path_for(product_id)
        if not path.is_file():
            raise CatalogUnavailable(f"No catalog file for {product_id!r} at {path}")
        normalized = load_normalized_catalog(path)
        if normalized.catalog.product_id != product_id:
            raise CatalogError(
                f"{path} describes {normalized.catalog.product_id!r}, expected {product_id!r}"
            )
        return normalized

    def load(self, product_id: str) -> OptionCatalog:
        return self.load_normalized(product_id).catalog


class HttpCatalogLoader:
    """
    Fetches `GET <base_url>/catalogs/<product_id>`; transport failures become `CatalogUnavailable`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._client = client

    def url_for(self, product_id: str) -> str:
        return f"{self.base_url}/catalogs/{product_id}"

    def _get(self, client: httpx.Client, url: str) -> httpx.Response:
        try:
            return client.get(url, timeout=self.timeout_s)
        except httpx.HTTPError as e:
            raise CatalogUnavailable(f"Catalog request failed: {type(e).__name__}: {e}") from e

    def load_normalized(self, product_id: str) -> NormalizedCatalog:
        url = self.url_for(product_id)
        if self._client is not None:
            resp = self._get(self._client, url)
        else:
            with httpx.Client(timeout=self.timeout_s) as client:
                resp = self._get(client, url)

        if not (200 <= resp.status_code < 300):
            raise CatalogUnavailable(f"Catalog service returned HTTP {resp.status_code} for {url}")
        try:
            data = resp.json()
        except ValueError as e:
            raise CatalogUnavailable(f"Catalog response was not JSON: {resp.text[:500]}") from e
        return normalized_from_document(data, source=url)

    def load(self, product_id: str) -> OptionCatalog:
        return self.load_normalized(product_id).catalog


class SampleCatalogLoader:
    def load_normalized(self, product_id: str) -> NormalizedCatalog:
        return NormalizedCatalog(
            catalog=load_sample_catalog(product_id),
            price_rules=sample_price_rules(product_id),
            source="sample",
        )

    def load(self, product_id: str) -> OptionCatalog:
        return load_sample_catalog(product_id)


def load_catalog_or_unavailable(loader: CatalogLoader, product_id: str) -> CatalogLoadResult:
    """
    Load a catalog, degrading to the read-only "customization unavailable" catalog on failure.
    """
    try:
        normalized = loader.load_normalized(product_id)
    except CatalogError as e:
        logger.warning("Catalog for %r unavailable: %s", product_id, e)
        return CatalogLoadResult(catalog=empty_catalog(product_id), available=False, reason=str(e))
    return CatalogLoadResult(
        catalog=normalized.catalog,
        available=True,
        price_rules=normalized.price_rules,
    )

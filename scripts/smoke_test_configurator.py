from __future__ import annotations

"""
Smoke test for the configurator core (local, offline).

Walks each built-in garment through a handful of wizard choices, one update at a time, then:
- prices the configuration (pricing_engine)
- projects render directives (render_directives)
- draws a preview PNG (garment_views)

Writes previews to `out/smoke_test_configurator/` and exits non-zero if anything breaks.

Usage:
  python3 scripts/smoke_test_configurator.py
  python3 scripts/smoke_test_configurator.py --out-dir out/smoke_test_configurator
"""

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from configuration_state import (
    ConfigurationError,
    ConfigurationState,
    new_configuration,
    select,
    set_quantity,
    update_lining,
    update_measurement,
    update_monogram,
)
from garment_views import PreviewRenderer
from option_catalog import CatalogError, OptionCatalog
from pricing_engine import GarmentPriceRules, format_price, generate_price_quote
from render_directives import project
from sample_catalogs import load_sample_catalog, sample_price_rules
from settings import configure_logging


@dataclass(frozen=True)
class Step:
    label: str
    apply: Callable[[ConfigurationState, OptionCatalog], ConfigurationState]


def _run_scenario(
    *,
    name: str,
    catalog: OptionCatalog,
    rules: GarmentPriceRules,
    steps: List[Step],
    out_dir: Path,
) -> None:
    state = new_configuration(catalog.product_id)
    renderer = PreviewRenderer(garment_type=catalog.garment_type)

    print("")
    print("=" * 72)
    print(f"SCENARIO: {name} ({catalog.product_id})")
    print("=" * 72)

    for i, step in enumerate(steps, start=1):
        state = step.apply(state, catalog)
        quote = generate_price_quote(state, catalog, rules.base_price, rules)
        directives = project(state, catalog)
        png = renderer.render(directives)
        if not png.startswith(b"\x89PNG"):
            raise RuntimeError("Preview is not a PNG.")

        label = f"{name}_{i:02d}_{step.label}"
        (out_dir / f"{label}.png").write_bytes(png)

        print(f"[{i}/{len(steps)}] {step.label}")
        print(f"  - total: {format_price(quote.total, quote.currency)}")
        print(f"  - visible: {', '.join(directives.visible_parts()) or '-'}")
        print(f"  - png: {label}.png")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--out-dir",
        default=str(_ROOT / "out" / "smoke_test_configurator"),
        help="Directory to write previews into (default: out/smoke_test_configurator).",
    )
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    out_dir = Path(args.out_dir).resolve()
    out_dir.mkdir(parents=True, exist_ok=True)

    shirt_steps = [
        Step("fabric", lambda s, c: select(select(s, c, "fabric-color", "light-blue"), c, "fabric-type", "linen")),
        Step("collar", lambda s, c: select(s, c, "collar-style", "button-down")),
        Step("contrast_cuff", lambda s, c: select(s, c, "cuff-contrast", "navy")),
        Step(
            "monogram",
            lambda s, c: update_monogram(
                s, {"enabled": True, "text": "jd", "position": "cuff", "thread_color": "gold"}, catalog=c
            ),
        ),
        Step("standard_size", lambda s, c: update_measurement(s, {"standard_size": "M", "fit_type": "slim"})),
    ]
    pants_steps = [
        Step("fabric", lambda s, c: select(s, c, "fabric-color", "charcoal")),
        Step("pleats", lambda s, c: select(s, c, "pleat-style", "double-pleat")),
        Step("no_belt_loops", lambda s, c: select(s, c, "belt-loops", "no-loops")),
        Step(
            "custom_measurements",
            lambda s, c: update_measurement(
                s,
                {
                    "size_type": "custom",
                    "custom_measurements": {"waist": "32", "hip": "40", "inseam": "31", "outseam": "42", "thigh": "24"},
                },
            ),
        ),
        Step("quantity", lambda s, c: set_quantity(s, 2)),
    ]
    jacket_steps = [
        Step("fabric", lambda s, c: select(s, c, "fabric-color", "charcoal")),
        Step("three_piece", lambda s, c: select(s, c, "jacket-style", "three-piece")),
        Step("double_breasted", lambda s, c: select(s, c, "button-configuration", "four-button")),
        Step("horn_gold", lambda s, c: select(select(s, c, "button-material", "horn"), c, "button-color", "gold")),
        Step("custom_lining", lambda s, c: update_lining(s, c, {"type": "custom", "color_id": "burgundy"})),
        Step(
            "monogram",
            lambda s, c: update_monogram(s, {"enabled": True, "text": "ABC", "position": "lining"}, catalog=c),
        ),
    ]

    for name, product_id, steps in (
        ("shirt", "shirt-001", shirt_steps),
        ("pants", "pants-001", pants_steps),
        ("jacket", "jacket-001", jacket_steps),
    ):
        _run_scenario(
            name=name,
            catalog=load_sample_catalog(product_id),
            rules=sample_price_rules(product_id),
            steps=steps,
            out_dir=out_dir,
        )

    print("")
    print(f"OK: wrote previews to {out_dir}")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except (CatalogError, ConfigurationError) as exc:
        print(f"FAIL: {type(exc).__name__}: {exc}", file=sys.stderr)
        raise SystemExit(2)

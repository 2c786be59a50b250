from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from normalized_catalogs import find_normalized_catalogs, load_normalized_catalog, write_normalized_catalog
from sample_catalogs import SAMPLE_PRODUCT_IDS, load_sample_catalog, sample_price_rules


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Write the built-in garment catalogs as normalized_catalog.json files."
    )
    parser.add_argument("--out-dir", required=True, help="Catalog root (one sub-directory per product id).")
    parser.add_argument(
        "--product",
        action="append",
        choices=SAMPLE_PRODUCT_IDS,
        help="Product id to export; repeatable (default: all).",
    )
    args = parser.parse_args(argv)

    out_dir = Path(args.out_dir)
    product_ids = args.product or list(SAMPLE_PRODUCT_IDS)

    written: List[Path] = []
    for product_id in product_ids:
        written.append(
            write_normalized_catalog(out_dir, load_sample_catalog(product_id), sample_price_rules(product_id))
        )

    # Read everything back so a broken export fails here rather than in the app.
    for path in find_normalized_catalogs(out_dir):
        load_normalized_catalog(path)

    print(f"Exported {len(written)} catalogs:")
    for w in written:
        print(f"- {w}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import json
import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import streamlit as st
from dotenv import load_dotenv

from configuration_state import (
    NO_MONOGRAM,
    ConfigurationError,
    ConfigurationState,
    LiningType,
    MeasurementMethod,
    MonogramType,
    SizeType,
    new_configuration,
    reset,
    select,
    set_quantity,
    state_from_payload,
    state_to_payload,
    update_lining,
    update_measurement,
    update_monogram,
)
from garment_views import PreviewRenderer
from measurement_guides import StaticMeasurementGuides
from normalized_catalogs import CatalogLoadResult, load_catalog_or_unavailable
from option_catalog import CatalogError, CategoryDefinition, CategoryRole, OptionCatalog
from order_submission import (
    Customer,
    CustomerInfoIncomplete,
    InMemoryMeasurementCache,
    InMemoryOrderSubmitter,
    OrderError,
    submit_order,
)
from pricing_engine import GarmentPriceRules, PriceQuote, format_price, generate_price_quote
from render_directives import project
from sample_catalogs import SAMPLE_PRODUCT_IDS
from settings import Settings, SettingsError, catalog_loader_from_settings, configure_logging, settings_from
from step_rules import (
    StepDefinition,
    StepKind,
    can_advance,
    completed_step_count,
    default_steps,
    first_incomplete_step,
)

logger = logging.getLogger(__name__)

STANDARD_SIZES: Tuple[str, ...] = ("XS", "S", "M", "L", "XL", "XXL")
FIT_TYPES: Tuple[str, ...] = ("slim", "regular", "relaxed")
MONOGRAM_FONTS: Tuple[str, ...] = ("classic-serif", "modern-sans", "script-elegant", "block-bold")
UNDO_LIMIT = 50


def _read_secret_or_env_str(key: str) -> str:
    """
    Read a configuration value from Streamlit Secrets (preferred) or environment variables.

    Returns a stripped string; returns "" when missing.
    """
    val: object = ""
    try:
        val = st.secrets.get(key, "")  # type: ignore[attr-defined]
    except Exception as e:
        # No secrets.toml: fall back to the environment.
        logger.debug("Streamlit secrets unavailable for %s: %s", key, e)
        val = ""
    if not val:
        val = os.environ.get(key, "")
    if isinstance(val, str):
        return val.strip()
    return str(val).strip() if val is not None else ""


@st.cache_resource
def _app_settings() -> Settings:
    load_dotenv(dotenv_path=Path.cwd() / ".env")
    settings = settings_from(_read_secret_or_env_str)
    configure_logging(settings.log_level)
    return settings


@st.cache_resource
def _load_catalog_cached(product_id: str) -> CatalogLoadResult:
    loader = catalog_loader_from_settings(_app_settings())
    return load_catalog_or_unavailable(loader, product_id)


@st.cache_resource
def _order_backend() -> Tuple[InMemoryOrderSubmitter, InMemoryMeasurementCache]:
    return InMemoryOrderSubmitter(), InMemoryMeasurementCache()


def _price_rules(result: CatalogLoadResult) -> GarmentPriceRules:
    if result.price_rules is not None:
        return result.price_rules
    return GarmentPriceRules(base_price=Decimal("0"), currency=_app_settings().currency)


# --- session-state helpers -------------------------------------------------


def _config_state(product_id: str) -> ConfigurationState:
    state = st.session_state.get("config_state")
    if isinstance(state, ConfigurationState) and state.product_id == product_id:
        return state
    state = new_configuration(product_id)
    st.session_state["config_state"] = state
    return state


def _commit(new_state: ConfigurationState) -> None:
    previous = st.session_state.get("config_state")
    if isinstance(previous, ConfigurationState) and previous != new_state:
        stack: List[ConfigurationState] = list(st.session_state.get("undo_stack") or [])
        stack.append(previous)
        st.session_state["undo_stack"] = stack[-UNDO_LIMIT:]
    st.session_state["config_state"] = new_state


def _undo() -> bool:
    stack: List[ConfigurationState] = list(st.session_state.get("undo_stack") or [])
    if not stack:
        return False
    st.session_state["config_state"] = stack.pop()
    st.session_state["undo_stack"] = stack
    return True


def _apply(update: Callable[[ConfigurationState], ConfigurationState], product_id: str) -> bool:
    """
    Run a state update; data errors become a flash message instead of a crash.
    """
    try:
        new_state = update(_config_state(product_id))
    except (CatalogError, ConfigurationError) as e:
        st.session_state["_flash_error"] = str(e)
        return False
    _commit(new_state)
    return True


def _switch_product(product_id: str) -> None:
    st.session_state["product_id"] = product_id
    st.session_state["config_state"] = new_configuration(product_id)
    st.session_state["undo_stack"] = []
    st.session_state["wizard_step"] = 0
    st.session_state.pop("order_confirmation", None)


def _step_index(steps: Sequence[StepDefinition]) -> int:
    idx = int(st.session_state.get("wizard_step") or 0)
    idx = max(0, min(idx, len(steps) - 1))
    st.session_state["wizard_step"] = idx
    return idx


def _advance(steps: Sequence[StepDefinition], product_id: str) -> bool:
    idx = _step_index(steps)
    if not can_advance(idx, _config_state(product_id), steps):
        st.session_state["_flash_error"] = f"Complete “{steps[idx].title}” before continuing."
        return False
    st.session_state["wizard_step"] = min(idx + 1, len(steps) - 1)
    return True


def _back(steps: Sequence[StepDefinition]) -> None:
    st.session_state["wizard_step"] = max(0, _step_index(steps) - 1)


# --- rendering ---------------------------------------------------------------


def _value_label(category: CategoryDefinition, value_id: str, currency: str) -> str:
    value = category.find_value(value_id)
    if value is None:
        return value_id
    if value.price_delta == 0:
        return value.name
    sign = "+" if value.price_delta > 0 else "-"
    return f"{value.name} ({sign}{format_price(abs(value.price_delta), currency)})"


def _render_category_picker(catalog: OptionCatalog, category: CategoryDefinition, currency: str) -> None:
    state = _config_state(catalog.product_id)
    ids = [v.id for v in category.values]
    current = state.selected_value_id(category.id)
    choice = st.radio(
        category.display_name,
        ids,
        index=ids.index(current) if current in ids else None,
        format_func=lambda vid: _value_label(category, vid, currency),
        key=f"pick_{catalog.product_id}_{category.id}",
        horizontal=len(ids) <= 4,
    )
    if choice is not None and choice != current:
        if _apply(lambda s: select(s, catalog, category.id, choice), catalog.product_id):
            st.rerun()


def _render_selection_step(catalog: OptionCatalog, step: StepDefinition, currency: str) -> None:
    for category_id in step.required_categories:
        _render_category_picker(catalog, catalog.get_category(category_id), currency)
    if step.key == "style":
        for category in catalog.categories_with_role(CategoryRole.COLOR_OVERRIDE):
            _render_category_picker(catalog, category, currency)


def _render_lining_step(catalog: OptionCatalog) -> None:
    state = _config_state(catalog.product_id)
    types = [t.value for t in LiningType]
    chosen = st.radio(
        "Lining",
        types,
        index=types.index(state.lining.type.value),
        format_func=lambda t: {"standard": "Standard (matching)", "custom": "Custom colour", "none": "No lining"}[t],
        key=f"lining_type_{catalog.product_id}",
        horizontal=True,
    )
    if chosen != state.lining.type.value:
        if _apply(lambda s: update_lining(s, catalog, {"type": chosen}), catalog.product_id):
            st.rerun()

    lining_category = catalog.category_for_role(CategoryRole.LINING_COLOR)
    if chosen == LiningType.CUSTOM.value and lining_category is not None:
        ids = [v.id for v in lining_category.values]
        current = state.lining.color_id
        color_id = st.selectbox(
            "Lining colour",
            ids,
            index=ids.index(current) if current in ids else None,
            format_func=lambda vid: lining_category.find_value(vid).name,  # type: ignore[union-attr]
            key=f"lining_color_{catalog.product_id}",
        )
        if color_id is not None and color_id != current:
            if _apply(lambda s: update_lining(s, catalog, {"color_id": color_id}), catalog.product_id):
                st.rerun()


def _render_monogram_step(catalog: OptionCatalog) -> None:
    state = _config_state(catalog.product_id)
    mono = state.monogram
    with st.form(key=f"monogram_form_{catalog.product_id}"):
        enabled = st.checkbox("Add an embroidered monogram", value=mono.enabled)
        types = [t.value for t in MonogramType]
        monogram_type = st.radio("Style", types, index=types.index(mono.monogram_type.value), horizontal=True)
        text = st.text_input("Text", value=mono.text)
        positions = [NO_MONOGRAM, *catalog.monogram_positions]
        position = st.selectbox(
            "Position",
            positions,
            index=positions.index(mono.position) if mono.position in positions else 0,
        )
        threads = list(catalog.thread_colors)
        thread = st.selectbox(
            "Thread colour",
            threads,
            index=threads.index(mono.thread_color) if mono.thread_color in threads else 0,
        )
        fonts = list(MONOGRAM_FONTS)
        font = st.selectbox("Font", fonts, index=fonts.index(mono.font_id) if mono.font_id in fonts else 0)
        submitted = st.form_submit_button("Save monogram")
    if submitted:
        patch = {
            "enabled": enabled,
            "monogram_type": monogram_type,
            "text": text,
            "position": position,
            "thread_color": thread,
            "font_id": font,
        }
        if _apply(lambda s: update_monogram(s, patch, catalog=catalog), catalog.product_id):
            st.rerun()


def _render_measurement_step(catalog: OptionCatalog, step: StepDefinition) -> None:
    state = _config_state(catalog.product_id)
    m = state.measurement
    size_types = [t.value for t in SizeType]
    size_type = st.radio(
        "Sizing",
        size_types,
        index=size_types.index(m.size_type.value),
        format_func=lambda t: "Standard size" if t == "standard" else "Custom measurements",
        key=f"size_type_{catalog.product_id}",
        horizontal=True,
    )
    if size_type != m.size_type.value:
        if _apply(lambda s: update_measurement(s, {"size_type": size_type}), catalog.product_id):
            st.rerun()

    if size_type == SizeType.STANDARD.value:
        col1, col2 = st.columns(2)
        size = col1.selectbox(
            "Size",
            STANDARD_SIZES,
            index=STANDARD_SIZES.index(m.standard_size) if m.standard_size in STANDARD_SIZES else None,
        )
        fit = col2.selectbox("Fit", FIT_TYPES, index=FIT_TYPES.index(m.fit_type) if m.fit_type in FIT_TYPES else None)
        if (size, fit) != (m.standard_size, m.fit_type):
            if _apply(lambda s: update_measurement(s, {"standard_size": size, "fit_type": fit}), catalog.product_id):
                st.rerun()
        return

    methods = [mm.value for mm in MeasurementMethod]
    method = st.radio("How will you measure?", methods, index=methods.index(m.measurement_method.value), horizontal=True)
    guides = StaticMeasurementGuides()
    with st.form(key=f"measurements_form_{catalog.product_id}"):
        raw_values = {}
        for key in step.required_measurement_keys:
            guide = guides.get_guide(catalog.garment_type, key)
            current = m.custom_measurements.get(key)
            raw_values[key] = st.text_input(
                f"{guide.title} (inches)",
                value="" if current is None else str(current),
                help=guide.description,
            )
            if method == MeasurementMethod.VIDEO.value and guide.video_url:
                st.caption(f"Video guide ({guide.video_duration}): {guide.video_url}")
            elif method == MeasurementMethod.SKETCH.value and guide.sketch_url:
                st.caption(f"Sketch: {guide.sketch_url}")
        submitted = st.form_submit_button("Save measurements")
    if submitted:
        patch = {"measurement_method": method, "custom_measurements": {k: v for k, v in raw_values.items() if v}}
        if _apply(lambda s: update_measurement(s, patch), catalog.product_id):
            st.rerun()


def _render_quantity_step(catalog: OptionCatalog) -> None:
    state = _config_state(catalog.product_id)
    qty = st.number_input("Quantity", min_value=1, max_value=100, value=state.quantity, step=1)
    if int(qty) != state.quantity:
        if _apply(lambda s: set_quantity(s, int(qty)), catalog.product_id):
            st.rerun()


def _quote_rows(quote: PriceQuote) -> List[dict]:
    return [
        {"Item": li.description, "Amount": format_price(li.amount, quote.currency)}
        for li in quote.line_items
    ]


def _render_review_step(catalog: OptionCatalog, rules: GarmentPriceRules, quote: PriceQuote) -> None:
    state = _config_state(catalog.product_id)
    st.dataframe(_quote_rows(quote), use_container_width=True, hide_index=True)
    for note in quote.notes:
        st.caption(note)
    st.metric("Total", format_price(quote.total, quote.currency))

    st.download_button(
        "Save configuration (JSON)",
        data=json.dumps(state_to_payload(state), indent=2),
        file_name=f"{catalog.product_id}-configuration.json",
        mime="application/json",
        use_container_width=True,
    )
    with st.expander("Resume a saved configuration", expanded=False):
        pasted = st.text_area("Paste a saved configuration", key=f"resume_{catalog.product_id}")
        if st.button("Resume", key=f"resume_btn_{catalog.product_id}") and pasted.strip():
            try:
                restored = state_from_payload(json.loads(pasted), catalog)
            except ValueError as e:
                st.error(f"Could not restore configuration: {e}")
            else:
                _commit(restored)
                st.rerun()

    confirmation = st.session_state.get("order_confirmation")
    if confirmation is not None:
        st.success(f"Order {confirmation.order_id} {confirmation.status}.")
        return

    with st.form(key=f"checkout_{catalog.product_id}"):
        st.subheader("Checkout")
        col1, col2 = st.columns(2)
        first_name = col1.text_input("First name")
        last_name = col2.text_input("Last name")
        email = col1.text_input("Email")
        phone = col2.text_input("Phone")
        address = st.text_input("Street address")
        col3, col4, col5 = st.columns(3)
        city = col3.text_input("City")
        region = col4.text_input("State")
        zip_code = col5.text_input("ZIP code")
        payment_reference = st.text_input("Payment reference")
        submitted = st.form_submit_button("Place order", use_container_width=True)
    if submitted:
        submitter, cache = _order_backend()
        customer = Customer(
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone,
            address=address,
            city=city,
            state=region,
            zip_code=zip_code,
        )
        try:
            st.session_state["order_confirmation"] = submit_order(
                submitter, state, catalog, rules, customer, payment_reference, cache=cache
            )
        except CustomerInfoIncomplete as e:
            st.error(str(e))
        except OrderError as e:
            st.error(f"Order failed: {e}")
        else:
            st.rerun()


def _render_sidebar(
    catalog: OptionCatalog,
    steps: Sequence[StepDefinition],
    step_index: int,
    quote: Optional[PriceQuote],
) -> None:
    state = _config_state(catalog.product_id)
    st.sidebar.subheader(catalog.display_name)
    done = completed_step_count(state, steps)
    st.sidebar.progress(done / len(steps), text=f"{done}/{len(steps)} steps complete")
    for idx, step in enumerate(steps):
        marker = "➡️" if idx == step_index else "•"
        st.sidebar.write(f"{marker} {step.title}")

    if quote is not None:
        st.sidebar.metric("Price", format_price(quote.total, quote.currency))

    directives = project(state, catalog)
    png = PreviewRenderer(garment_type=catalog.garment_type).render(directives)
    st.sidebar.image(png, caption="Preview", use_container_width=True)

    col1, col2 = st.sidebar.columns(2)
    if col1.button("Undo", use_container_width=True, disabled=not st.session_state.get("undo_stack")):
        _undo()
        st.rerun()
    if col2.button("Reset", use_container_width=True):
        _commit(reset(state))
        st.session_state["wizard_step"] = 0
        st.rerun()


def _render_step(
    catalog: OptionCatalog,
    rules: GarmentPriceRules,
    step: StepDefinition,
    quote: PriceQuote,
) -> None:
    if step.kind == StepKind.SELECTION:
        _render_selection_step(catalog, step, rules.currency)
    elif step.kind == StepKind.LINING:
        _render_lining_step(catalog)
    elif step.kind == StepKind.MONOGRAM:
        _render_monogram_step(catalog)
    elif step.kind == StepKind.MEASUREMENT:
        _render_measurement_step(catalog, step)
    elif step.kind == StepKind.QUANTITY:
        _render_quantity_step(catalog)
    else:
        _render_review_step(catalog, rules, quote)


def main() -> None:
    st.set_page_config(page_title="Garment Configurator", layout="wide")
    st.title("Garment Configurator")

    try:
        settings = _app_settings()
    except SettingsError as e:
        st.error(f"Configuration error: {e}")
        st.stop()

    products = list(SAMPLE_PRODUCT_IDS)
    if settings.default_product_id not in products:
        products.insert(0, settings.default_product_id)
    product_id = str(st.session_state.get("product_id") or settings.default_product_id)
    picked = st.sidebar.selectbox("Garment", products, index=products.index(product_id) if product_id in products else 0)
    if picked != product_id:
        _switch_product(picked)
        st.rerun()
    st.session_state["product_id"] = product_id

    result = _load_catalog_cached(product_id)
    catalog = result.catalog
    if not result.available or catalog.is_empty:
        st.warning("Customization unavailable for this product right now.")
        if result.reason:
            st.caption(result.reason)
        if st.button("Retry"):
            _load_catalog_cached.clear()
            st.rerun()
        st.stop()

    rules = _price_rules(result)
    state = _config_state(product_id)
    steps = default_steps(catalog)
    step_index = _step_index(steps)
    quote = generate_price_quote(state, catalog, rules.base_price, rules)

    _render_sidebar(catalog, steps, step_index, quote)

    flash = st.session_state.pop("_flash_error", None)
    if flash:
        st.error(flash)

    step = steps[step_index]
    st.subheader(f"{step_index + 1}. {step.title}")
    _render_step(catalog, rules, step, quote)

    st.divider()
    col1, col2, _ = st.columns([1, 1, 6])
    if step_index > 0 and col1.button("Back", use_container_width=True):
        _back(steps)
        st.rerun()
    if step_index < len(steps) - 1 and col2.button("Next", use_container_width=True):
        _advance(steps, product_id)
        st.rerun()

    pending = first_incomplete_step(state, steps)
    if pending is not None and pending < step_index:
        st.caption(f"Still to do: {steps[pending].title}")


if __name__ == "__main__":
    main()

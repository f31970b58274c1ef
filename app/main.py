"""
Streamlit Frontend for CleanWallet

The screens a user works with every day:
- Dashboard: period totals, category breakdown, budgets, history
- Wallet: cards and the transaction list
- Details: view, edit or delete one transaction
- Scan: turn banking screenshots or receipts into transactions
- Profile: currency, categories, cards and connection status

DESIGN PRINCIPLES:
1. Nothing scanned is saved until the user picks the rows and saves
2. Every failure is shown as a blocking message; nothing is retried
3. A failed action leaves stored data untouched
"""

import asyncio
from datetime import date

import streamlit as st

from cleanwallet.config import get_settings, validate_all_settings
from cleanwallet.models import (
    CARD_COLORS,
    CATEGORY_COLORS,
    CURRENCIES,
    Card,
    Category,
    PartialTransaction,
    Transaction,
    get_currency,
)
from cleanwallet.orchestrator import AppComponents, create_app_components
from cleanwallet.queries import (
    SEGMENTS,
    InvalidBudgetError,
    amount_kind,
    budget_plan_for_categories,
    build_budget_rows,
    category_totals,
    filter_by_period,
    format_amount,
    format_signed_currency,
    group_transactions_by_date,
    income_expense_totals,
    monthly_history,
    period_label,
    recent_transactions,
    set_item_budget,
    set_total_budget,
    shift_period,
    toggle_percentage_mode,
    total_amount,
    validate_budget_plan,
)
from cleanwallet.scanning import (
    ApiKeyMissingError,
    ScanError,
    toggle_select_all,
)
from cleanwallet.services.storage import StorageError
from cleanwallet.services.vision import VisionError
from cleanwallet.store import CategoryInUseError


# Page configuration
st.set_page_config(
    page_title="CleanWallet",
    page_icon="💳",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for amounts
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .income { color: #2ecc71; font-weight: bold; }
    .expense { color: #e74c3c; font-weight: bold; }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)

PAGES = ["📊 Dashboard", "👛 Wallet", "🧾 Details", "📷 Scan", "👤 Profile"]


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    return create_app_components()


def currency_symbol() -> str:
    return get_currency(st.session_state.get("currency", get_settings().app.default_currency)).symbol


def amount_html(amount: float) -> str:
    return f'<span class="{amount_kind(amount)}">{format_amount(amount, currency_symbol())}</span>'


def card_label(components: AppComponents, card_id) -> str:
    card = components.store.get_card(card_id) if card_id else None
    return card.name if card else "No card"


def open_details(transaction_id: int):
    st.session_state.detail_transaction_id = transaction_id
    st.session_state.page = PAGES[2]


def open_scan(card_id: int):
    st.session_state.scan_card_id = card_id
    st.session_state.page = PAGES[3]


def main():
    """Main application entry point."""
    components = get_components()

    try:
        run_async(components.ensure_initialized())
    except StorageError as e:
        st.error(f"Could not load your data: {e}")
        st.stop()

    st.session_state.setdefault("currency", get_settings().app.default_currency)
    st.session_state.setdefault("page", PAGES[0])

    # Sidebar navigation
    st.sidebar.title("💳 CleanWallet")
    st.sidebar.markdown("---")

    page = st.sidebar.radio("Navigate to:", PAGES, key="page")

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How to use:**
        1. Add a card in the Wallet
        2. Add transactions or scan a screenshot
        3. Review your spending on the Dashboard
        """
    )

    # Route to appropriate page
    if page == PAGES[0]:
        render_dashboard_page(components)
    elif page == PAGES[1]:
        render_wallet_page(components)
    elif page == PAGES[2]:
        render_details_page(components)
    elif page == PAGES[3]:
        render_scan_page(components)
    elif page == PAGES[4]:
        render_profile_page(components)


# =============================================================================
# DASHBOARD
# =============================================================================

def render_dashboard_page(components: AppComponents):
    """Render the dashboard page."""
    store = components.store
    st.title("📊 Dashboard")

    st.session_state.setdefault("segment", "M")
    st.session_state.setdefault("anchor", date.today())

    segment = st.radio("Period", SEGMENTS, horizontal=True, key="segment")

    col1, col2, col3 = st.columns([1, 3, 1])
    with col1:
        if st.button("◀ Previous"):
            st.session_state.anchor = shift_period(segment, st.session_state.anchor, -1)
            st.rerun()
    with col2:
        st.markdown(f"### {period_label(segment, st.session_state.anchor)}")
    with col3:
        if st.button("Next ▶"):
            st.session_state.anchor = shift_period(segment, st.session_state.anchor, 1)
            st.rerun()

    cards = store.get_all_cards()
    card_filter = st.selectbox(
        "Card",
        options=[0] + [c.id for c in cards],
        format_func=lambda cid: "All cards" if cid == 0 else card_label(components, cid),
    )

    card_transactions = store.transactions_for_card(card_filter)
    in_period = filter_by_period(card_transactions, segment, st.session_state.anchor)
    symbol = currency_symbol()

    st.markdown(
        f'<div class="big-number">{format_signed_currency(total_amount(in_period), symbol)}</div>',
        unsafe_allow_html=True,
    )
    st.caption(f"{len(in_period)} transactions in this period")

    st.markdown("---")
    st.subheader("Spending by category")
    totals = category_totals(in_period, store.get_all_categories())
    if totals:
        col1, col2 = st.columns(2)
        with col1:
            st.dataframe(
                [{"Category": t.name, "Amount": format_signed_currency(t.amount, symbol)} for t in totals],
                hide_index=True,
                use_container_width=True,
            )
        with col2:
            st.bar_chart(
                [{"Category": t.name, "Amount": t.amount} for t in totals],
                x="Category",
                y="Amount",
            )
    else:
        st.info("No transactions in this period.")

    st.markdown("---")
    render_budget_section(components, in_period)

    st.markdown("---")
    st.subheader("Income and expenses")
    history = monthly_history(card_transactions, months=6)
    split = income_expense_totals(in_period)
    col1, col2, col3 = st.columns(3)
    col1.metric("Income", format_signed_currency(split.income, symbol))
    col2.metric("Expenses", format_signed_currency(split.expense, symbol))
    col3.metric("Net", format_signed_currency(split.net, symbol))
    st.bar_chart(
        [
            {"Month": label, "Expenses": expense, "Income": income}
            for label, expense, income in zip(history.labels, history.expenses, history.income)
        ],
        x="Month",
        y=["Expenses", "Income"],
    )

    st.markdown("---")
    st.subheader("Recent transactions")
    for transaction in recent_transactions(card_transactions):
        render_transaction_row(components, transaction, key_prefix="recent")


def render_budget_section(components: AppComponents, transactions: list[Transaction]):
    """Budget bars and the budget editor."""
    store = components.store
    st.subheader("Budgets")

    plan = store.get_budget_plan()
    rows = build_budget_rows(plan, transactions, store.get_all_categories())
    budgeted = [row for row in rows if row.budget > 0]
    if budgeted:
        for row in budgeted:
            label = f"{row.name}: {row.spent:,.0f} / {row.budget:,.0f}"
            if row.over_budget:
                label += " ⚠️ over budget"
            st.progress(row.progress / 100, text=label)
    else:
        st.info("No budgets set yet.")

    with st.expander("✏️ Edit budgets"):
        draft = st.session_state.get("budget_draft")
        if draft is None:
            draft = budget_plan_for_categories(plan, store.get_all_categories())

        total = st.number_input("Total budget", min_value=0.0, value=float(draft.total_budget), step=10.0)
        use_percentage = st.toggle("Use percentages", value=draft.use_percentage)

        try:
            if use_percentage != draft.use_percentage:
                draft = toggle_percentage_mode(draft)
            if total != draft.total_budget:
                draft = set_total_budget(draft, total)

            for index, item in enumerate(draft.items):
                current = item.percentage if draft.use_percentage else item.budget
                value = st.number_input(
                    f"{item.name} ({'%' if draft.use_percentage else currency_symbol()})",
                    min_value=0.0,
                    value=float(current or 0.0),
                    key=f"budget_item_{index}",
                )
                if value != (current or 0.0):
                    draft = set_item_budget(draft, index, value)
        except InvalidBudgetError as e:
            st.error(str(e))

        st.session_state.budget_draft = draft

        if st.button("💾 Save budgets", type="primary"):
            try:
                validate_budget_plan(draft)
            except InvalidBudgetError as e:
                st.error(str(e))
            else:
                if run_async(store.save_budget_plan(draft)):
                    st.session_state.budget_draft = None
                    st.success("Budgets saved")
                    st.rerun()
                else:
                    st.error("Could not save budgets")


# =============================================================================
# WALLET
# =============================================================================

def render_transaction_row(components: AppComponents, transaction: Transaction, key_prefix: str):
    col1, col2, col3, col4 = st.columns([4, 2, 2, 1])
    with col1:
        st.markdown(f"**{transaction.name}**  \n{transaction.category} · {card_label(components, transaction.card_id)}")
    with col2:
        st.markdown(transaction.date)
    with col3:
        st.markdown(amount_html(transaction.mount), unsafe_allow_html=True)
    with col4:
        st.button(
            "🔎",
            key=f"{key_prefix}_open_{transaction.id}",
            on_click=open_details,
            args=(transaction.id,),
        )


def render_wallet_page(components: AppComponents):
    """Render the cards and transactions page."""
    store = components.store
    st.title("👛 Wallet")

    cards = store.get_all_cards()
    selected = store.get_selected_card()
    options = [0] + [c.id for c in cards]
    default_index = options.index(selected.id) if selected else 0

    col1, col2 = st.columns([3, 1])
    with col1:
        card_id = st.selectbox(
            "Card",
            options=options,
            index=default_index,
            format_func=lambda cid: "All" if cid == 0 else card_label(components, cid),
        )
    with col2:
        if card_id and (selected is None or selected.id != card_id):
            if st.button("⭐ Make default"):
                run_async(store.select_card(card_id))
                st.rerun()

    with st.expander("➕ Add card"):
        with st.form("add_card", clear_on_submit=True):
            name = st.text_input("Card name")
            color = st.selectbox("Color", CARD_COLORS)
            if st.form_submit_button("Add card"):
                try:
                    card = run_async(store.add_card(name, color))
                    st.success(f"Card '{card.name}' added")
                    st.rerun()
                except ValueError as e:
                    st.error(str(e))

    with st.expander("➕ Add transaction"):
        render_add_transaction_form(components, card_id)

    if not card_id:
        if st.button("📷 Scan receipts for this card"):
            st.warning("Select a specific card before scanning.")
    else:
        st.button("📷 Scan receipts for this card", on_click=open_scan, args=(card_id,))

    st.markdown("---")
    sections = group_transactions_by_date(store.transactions_for_card(card_id))
    if not sections:
        st.info("No transactions yet. Add one or scan a receipt.")

    for section in sections:
        st.markdown(f"#### {section.title}  ·  {amount_html(section.total)}", unsafe_allow_html=True)
        for transaction in section.data:
            render_transaction_row(components, transaction, key_prefix="wallet")


def render_add_transaction_form(components: AppComponents, card_id: int):
    store = components.store
    categories = [c.name for c in store.get_all_categories()]

    with st.form("add_transaction", clear_on_submit=True):
        name = st.text_input("Name")
        amount = st.number_input("Amount", min_value=0.0, step=1.0)
        is_income = st.checkbox("This is income")
        category = st.selectbox("Category", categories) if categories else None
        tx_date = st.date_input("Date", value=date.today())

        if st.form_submit_button("Add transaction"):
            partial = PartialTransaction(
                name=name or None,
                mount=-amount if is_income else amount,
                category=category,
                date=tx_date.isoformat(),
                card_id=card_id or None,
            )
            new_id = run_async(store.add_transaction(partial))
            st.success(f"Transaction #{new_id} added")
            st.rerun()


# =============================================================================
# DETAILS
# =============================================================================

def render_details_page(components: AppComponents):
    """Render one transaction with edit and delete actions."""
    store = components.store
    st.title("🧾 Transaction Details")

    transactions = store.get_all_transactions()
    if not transactions:
        st.info("No transactions yet.")
        return

    ids = [t.id for t in transactions]
    current = st.session_state.get("detail_transaction_id")
    transaction_id = st.selectbox(
        "Transaction",
        options=ids,
        index=ids.index(current) if current in ids else 0,
        format_func=lambda tid: f"#{tid} {store.get_transaction(tid).name}",
    )
    st.session_state.detail_transaction_id = transaction_id
    transaction = store.get_transaction(transaction_id)

    st.markdown(f"## {amount_html(transaction.mount)}", unsafe_allow_html=True)
    st.markdown(
        f"**{transaction.name}** · {transaction.category} · "
        f"{transaction.date} · {card_label(components, transaction.card_id)}"
    )

    categories = [c.name for c in store.get_all_categories()]
    if transaction.category not in categories:
        categories.append(transaction.category)
    cards = store.get_all_cards()

    with st.form("edit_transaction"):
        name = st.text_input("Name", value=transaction.name)
        category = st.selectbox("Category", categories, index=categories.index(transaction.category))
        amount = st.number_input("Amount (negative for income)", value=float(transaction.mount))
        tx_date = st.date_input("Date", value=transaction.parsed_date)
        card_options = [None] + [c.id for c in cards]
        card_id = st.selectbox(
            "Card",
            card_options,
            index=card_options.index(transaction.card_id) if transaction.card_id in card_options else 0,
            format_func=lambda cid: card_label(components, cid),
        )
        apply_to_similar = st.checkbox(
            "Apply name and category to all transactions with the same name, and remember for scans"
        )

        if st.form_submit_button("💾 Save changes", type="primary"):
            if not name.strip():
                st.error("Transaction name cannot be empty")
            else:
                edited = transaction.model_copy(update={
                    "name": name.strip(),
                    "category": category,
                    "mount": amount,
                    "date": tx_date.isoformat(),
                    "card_id": card_id,
                })
                try:
                    changed = run_async(
                        components.save_transaction_edit(transaction, edited, apply_to_similar)
                    )
                    st.success(f"Saved ({changed} transaction(s) updated)")
                    st.rerun()
                except StorageError as e:
                    st.error(f"Failed to save: {e}")

    if st.button("🗑️ Delete transaction"):
        if run_async(store.delete_transaction(transaction_id)):
            st.session_state.detail_transaction_id = None
            st.success("Transaction deleted")
            st.rerun()
        else:
            st.error("Could not delete the transaction")


# =============================================================================
# SCAN
# =============================================================================

def render_api_key_prompt(components: AppComponents):
    st.warning("Scanning needs an API key for the vision model.")
    with st.form("api_key"):
        api_key = st.text_input("API key", type="password")
        if st.form_submit_button("Save key"):
            try:
                components.set_api_key(api_key)
                st.success("API key saved for this session")
                st.rerun()
            except ValueError as e:
                st.error(str(e))


def render_scan_page(components: AppComponents):
    """Render the receipt scanning page."""
    store = components.store
    scanner = components.scanner
    st.title("📷 Scan Receipts")
    st.markdown("Upload banking screenshots or receipt photos to extract transactions.")

    if not scanner.has_vision_client:
        render_api_key_prompt(components)
        return

    cards = store.get_all_cards()
    if not cards:
        st.warning("Add a card in the Wallet before scanning.")
        return

    card_ids = [c.id for c in cards]
    preset = st.session_state.get("scan_card_id")
    selected = store.get_selected_card()
    default_id = preset if preset in card_ids else (selected.id if selected else card_ids[0])
    card_id = st.selectbox(
        "Card for these transactions",
        card_ids,
        index=card_ids.index(default_id),
        format_func=lambda cid: card_label(components, cid),
    )

    formats = get_settings().app.supported_formats_list
    uploaded_files = st.file_uploader(
        f"Choose up to {scanner.max_images} images",
        type=formats,
        accept_multiple_files=True,
    )

    if uploaded_files and st.button("🔍 Scan images", type="primary"):
        images = [(f.name, f.getvalue()) for f in uploaded_files]
        progress_bar = st.progress(0.0, text="Starting...")

        def on_progress(update):
            text = f"Image {update.current + 1} of {update.total}" if update.current < update.total else "Done"
            progress_bar.progress(update.percent / 100, text=text)

        try:
            summary = run_async(scanner.scan_all(images, card_id, progress=on_progress))
        except ApiKeyMissingError:
            render_api_key_prompt(components)
            return
        except (ScanError, VisionError) as e:
            st.error(f"Error processing images: {e}")
            return

        st.session_state.scan_rows = summary.transactions
        st.session_state.scan_card_id = card_id
        st.success(summary.user_message())
        for error in summary.errors:
            st.warning(f"{error.source}: {error.message}")

    rows = st.session_state.get("scan_rows")
    if rows:
        render_scan_review(components, rows, card_id)


def render_scan_review(components: AppComponents, rows: list[PartialTransaction], card_id: int):
    """Review extracted rows: select, rename, re-categorize, save."""
    store = components.store
    st.markdown("---")
    st.subheader("📋 Review extracted transactions")
    st.markdown("*You can edit the name and category before saving*")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Select all"):
            st.session_state.scan_rows = toggle_select_all(rows, True)
            st.rerun()
    with col2:
        if st.button("Deselect all"):
            st.session_state.scan_rows = toggle_select_all(rows, False)
            st.rerun()

    categories = store.category_names()
    edited_rows = []
    for index, row in enumerate(rows):
        col1, col2, col3, col4 = st.columns([1, 4, 3, 2])
        with col1:
            selected = st.checkbox("Save", value=row.selected, key=f"scan_sel_{index}", label_visibility="collapsed")
        with col2:
            name = st.text_input("Name", value=row.name or "", key=f"scan_name_{index}")
        with col3:
            options = categories if row.category in categories else categories + [row.category or "Others"]
            category = st.selectbox(
                "Category",
                options,
                index=options.index(row.category) if row.category in options else 0,
                key=f"scan_cat_{index}",
            )
        with col4:
            st.markdown(f"{row.date}  \n{amount_html(row.mount or 0)}", unsafe_allow_html=True)
        edited_rows.append(row.model_copy(update={
            "selected": selected,
            "name": name.strip() or row.name,
            "category": category,
        }))

    st.session_state.scan_rows = edited_rows

    col1, col2 = st.columns(2)
    with col1:
        if st.button("✅ Save selected", type="primary"):
            try:
                saved_ids = run_async(components.scanner.save_selected(edited_rows, card_id))
            except ScanError as e:
                st.error(str(e))
            else:
                st.session_state.scan_rows = None
                st.success(f"{len(saved_ids)} transactions saved")
    with col2:
        if st.button("❌ Discard"):
            st.session_state.scan_rows = None
            st.rerun()


# =============================================================================
# PROFILE
# =============================================================================

def render_profile_page(components: AppComponents):
    """Render the profile and settings page."""
    store = components.store
    st.title("👤 Profile")

    st.markdown("### Currency")
    codes = [c.code for c in CURRENCIES]
    if st.session_state.get("currency") not in codes:
        st.session_state.currency = codes[0]
    st.selectbox(
        "Display currency",
        codes,
        format_func=lambda code: f"{code} - {get_currency(code).name} ({get_currency(code).symbol})",
        key="currency",
    )

    st.markdown("---")
    st.markdown("### Categories")
    for category in store.get_all_categories():
        render_category_editor(components, category)

    with st.expander("➕ Add category"):
        with st.form("add_category", clear_on_submit=True):
            name = st.text_input("Category name")
            icon = st.text_input("Icon", value="cube-outline")
            color = st.selectbox("Color", CATEGORY_COLORS)
            if st.form_submit_button("Add category"):
                try:
                    run_async(store.add_category(name, icon, color))
                    st.success("Category added")
                    st.rerun()
                except ValueError as e:
                    st.error(str(e))

    st.markdown("---")
    st.markdown("### Cards")
    cards = store.get_all_cards()
    if not cards:
        st.info("No cards yet. Add one in the Wallet.")
    for card in cards:
        render_card_editor(components, card)

    st.markdown("---")
    render_settings_status()


def render_category_editor(components: AppComponents, category: Category):
    store = components.store
    usage = store.category_usage_count(category.name)
    with st.expander(f"{category.name} ({usage} transactions)"):
        with st.form(f"category_{category.id}"):
            name = st.text_input("Name", value=category.name)
            icon = st.text_input("Icon", value=category.icon)
            color = st.color_picker("Color", value=category.color)
            if st.form_submit_button("Save"):
                if not name.strip():
                    st.error("Category name cannot be empty")
                else:
                    try:
                        run_async(store.update_category(
                            category.model_copy(update={"name": name.strip(), "icon": icon, "color": color})
                        ))
                        st.success("Category updated")
                        st.rerun()
                    except ValueError as e:
                        st.error(str(e))
        if st.button("🗑️ Delete", key=f"delete_category_{category.id}"):
            try:
                run_async(store.delete_category(category.id))
                st.rerun()
            except CategoryInUseError as e:
                st.error(str(e))


def render_card_editor(components: AppComponents, card: Card):
    store = components.store
    title = f"{card.name}{' ⭐' if card.selected else ''}"
    with st.expander(title):
        with st.form(f"card_{card.id}"):
            name = st.text_input("Name", value=card.name)
            color = st.color_picker("Color", value=card.color)
            if st.form_submit_button("Save"):
                if not name.strip():
                    st.error("Card name cannot be empty")
                else:
                    run_async(store.update_card(card.model_copy(update={"name": name.strip(), "color": color})))
                    st.success("Card updated")
                    st.rerun()
        if st.button("🗑️ Delete", key=f"delete_card_{card.id}"):
            run_async(store.delete_card(card.id))
            st.rerun()


def render_settings_status():
    """Connection and configuration status."""
    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Vision model (receipt scanning)", "vision"),
        ("Local storage", "storage"),
        ("App settings", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API key. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()

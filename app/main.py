"""
Streamlit Frontend for Pocket Ledger

A single screen:
1. Balance card
2. Add / edit transaction form
3. Recent transactions, newest first, with "Show more"

The UI owns no ledger state. It reads from the LedgerStore, calls its
mutation methods, and reruns when the store reports a change.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

import streamlit as st

from src.config import get_settings, validate_all_settings
from src.ledger import LedgerChange, LedgerStore, TransactionNotFoundError
from src.models.transaction import InvalidAmountError, Transaction, TransactionType
from src.orchestrator import configure_logging, create_ledger_store
from src.services.storage import StorageError


TYPE_COLORS = {
    TransactionType.INCOME: "green",
    TransactionType.EXPENSE: "red",
    TransactionType.PENDING: "orange",
}

TYPE_ICONS = {
    TransactionType.INCOME: "⬇️",
    TransactionType.EXPENSE: "⬆️",
    TransactionType.PENDING: "🕒",
}


# Page configuration
st.set_page_config(
    page_title="Pocket Ledger",
    page_icon="💰",
    layout="centered",
)

# Custom CSS for the balance card
st.markdown("""
<style>
    .balance-card {
        padding: 20px;
        background-color: #eeeeee;
        border-radius: 20px;
        text-align: center;
        margin: 10px 0;
    }
    .balance-title {
        color: gray;
        font-size: 1.2em;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #555555;
    }
    .last-updated {
        color: gray;
        font-size: 0.8em;
    }
</style>
""", unsafe_allow_html=True)


@st.cache_resource
def get_ledger() -> LedgerStore:
    """Get or create the loaded ledger (cached for the process lifetime)."""
    configure_logging(get_settings().app.log_level)
    ledger = create_ledger_store()
    # Registered once per process; writes to the session whose run made the change
    ledger.subscribe(remember_change)
    return ledger


def format_money(amount: Decimal, symbol: str) -> str:
    return f"{symbol}{amount.quantize(Decimal('0.01')):,.2f}"


def format_signed(transaction: Transaction, symbol: str) -> str:
    sign = "-" if transaction.type == TransactionType.EXPENSE else "+"
    return f"{sign}{format_money(transaction.amount, symbol)}"


def remember_change(change: LedgerChange) -> None:
    st.session_state.last_change = change


def reset_form() -> None:
    st.session_state.editing_id = None
    st.session_state.form_open = False


def main():
    """Main application entry point."""
    ledger = get_ledger()
    ledger_settings = get_settings().ledger
    symbol = ledger_settings.currency_symbol

    # Initialize session state
    if "editing_id" not in st.session_state:
        st.session_state.editing_id = None
    if "form_open" not in st.session_state:
        st.session_state.form_open = False

    change = st.session_state.pop("last_change", None)
    if change is not None:
        st.toast(f"Transaction {change.kind.value}")

    render_balance_card(ledger, ledger_settings.balance_title, symbol)

    if st.button("➕ Add", type="primary", use_container_width=True):
        st.session_state.editing_id = None
        st.session_state.form_open = True

    if st.session_state.form_open:
        render_form(ledger)

    render_transactions(ledger, symbol)

    with st.sidebar:
        render_settings_status()


def render_balance_card(ledger: LedgerStore, title: str, symbol: str):
    """Render the balance card."""
    updated = ledger.last_updated.strftime("%d %b %Y %H:%M") if ledger.last_updated else "never"
    st.markdown(f"""
    <div class="balance-card">
        <div class="balance-title">{title}</div>
        <div class="big-number">{format_money(ledger.balance, symbol)}</div>
        <div class="last-updated">🕒 Last updated {updated}</div>
    </div>
    """, unsafe_allow_html=True)


def render_form(ledger: LedgerStore):
    """Render the add / edit form."""
    editing: Optional[Transaction] = None
    if st.session_state.editing_id:
        try:
            editing = ledger.get(st.session_state.editing_id)
        except TransactionNotFoundError:
            st.session_state.editing_id = None

    types = list(TransactionType)

    with st.form("transaction_form"):
        st.subheader("Edit Transaction" if editing else "New Transaction")

        amount_text = st.text_input(
            "Amount",
            value=str(editing.amount) if editing else "",
        )
        description = st.text_input(
            "Description",
            value=editing.description if editing else "",
        )
        chosen_date = st.date_input(
            "Date",
            value=editing.date.date() if editing else date.today(),
        )
        transaction_type = st.selectbox(
            "Type",
            options=types,
            index=types.index(editing.type) if editing else 0,
            format_func=lambda t: t.value,
        )

        col1, col2 = st.columns(2)
        with col1:
            cancelled = st.form_submit_button("Cancel")
        with col2:
            saved = st.form_submit_button("Save", type="primary")

    if cancelled:
        reset_form()
        st.rerun()

    if saved:
        when = datetime.combine(chosen_date, editing.date.time() if editing else time())
        try:
            if editing:
                ledger.update(editing.id, when, transaction_type, description, amount_text)
            else:
                ledger.add(when, transaction_type, description, amount_text)
        except InvalidAmountError:
            st.error("Please enter a valid amount, e.g. 12.50")
            return
        except StorageError as e:
            st.warning(f"Saved in this session, but writing to storage failed: {e}")
        reset_form()
        st.rerun()


def render_transactions(ledger: LedgerStore, symbol: str):
    """Render the visible window of transactions."""
    st.markdown("## Recent Transactions")

    if not len(ledger):
        st.info("No transactions yet. Use 'Add' to record your first one.")
        return

    for transaction in ledger.visible_transactions:
        color = TYPE_COLORS[transaction.type]
        col1, col2, col3, col4 = st.columns([1, 6, 3, 2])
        with col1:
            st.markdown(f"### {TYPE_ICONS[transaction.type]}")
        with col2:
            st.markdown(f"**{transaction.description or '(no description)'}**")
            st.caption(transaction.date.strftime("%d %b %Y"))
        with col3:
            st.markdown(f":{color}[{format_signed(transaction, symbol)}]")
        with col4:
            if st.button("✏️", key=f"edit-{transaction.id}", help="Edit"):
                st.session_state.editing_id = str(transaction.id)
                st.session_state.form_open = True
                st.rerun()
            if st.button("🗑️", key=f"delete-{transaction.id}", help="Delete"):
                try:
                    ledger.remove(transaction.id)
                except StorageError as e:
                    st.warning(f"Deleted in this session, but writing to storage failed: {e}")
                st.rerun()

    if ledger.has_more:
        if st.button("Show more", use_container_width=True):
            ledger.expand_visible()
            st.rerun()


def render_settings_status():
    """Render storage configuration status."""
    st.markdown("### Storage")
    ledger_settings = get_settings().ledger
    st.markdown(f"**Backend:** {ledger_settings.storage_backend}")
    if ledger_settings.storage_backend == "file":
        st.markdown(f"**File:** `{ledger_settings.data_file}`")

    status = validate_all_settings()
    if ledger_settings.storage_backend == "google_sheets" and not status.get("google_sheets"):
        st.error(f"Google Sheets - {status.get('google_sheets_error', 'Not configured')}")


if __name__ == "__main__":
    main()

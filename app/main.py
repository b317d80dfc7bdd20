"""
Streamlit Frontend for HomeSplit

This is the interface housemates open to log what they spent and see
who owes whom.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Show the split before saving it
3. Clear error messages in simple language
4. Visual feedback for all operations
5. No hidden actions

Balances on every page come from the stored ledger:
- Adding or deleting an expense marks balances stale
- The dashboard refolds the ledger when it is stale
- A failed refresh is shown as such, never as "all settled"
"""

import asyncio
from datetime import date, datetime
from decimal import Decimal

import streamlit as st

from homesplit.audit import create_correlation_id
from homesplit.config import get_settings, validate_all_settings
from homesplit.models import (
    CustomSplit,
    EqualSplit,
    Expense,
    ExpenseCategory,
    FullPaymentSplit,
    ItemPriority,
    Roster,
    SplitType,
)
from homesplit.orchestrator import (
    BalanceFlow,
    ExpenseFlow,
    ExpenseRejectedError,
    ShoppingFlow,
    create_app_components,
)
from homesplit.reports import (
    categories_used,
    expenses_to_csv,
    filter_expenses,
    group_by_day,
    group_by_month,
    total_expenses,
)
from homesplit.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="HomeSplit",
    page_icon="🏠",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .error-box {
        padding: 20px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_storage=False)


def money(amount: Decimal) -> str:
    symbol = get_settings().household.currency_symbol
    return f"{symbol}{amount:,.2f}"


def main():
    """Main application entry point."""
    expense_flow, shopping_flow, balance_flow, sheets_client = get_components()
    roster = balance_flow.roster

    # Profile selection
    if "current_user" not in st.session_state:
        render_profile_page(roster)
        return

    current_user = st.session_state.current_user

    # Sidebar navigation
    st.sidebar.title("🏠 HomeSplit")
    st.sidebar.markdown(f"Signed in as **{roster.display_name(current_user)}**")
    if st.sidebar.button("Switch profile"):
        del st.session_state.current_user
        st.rerun()
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "➕ Add Expense", "📜 History", "🛒 Shopping List", "⚙️ Settings"],
        index=0,
    )

    if sheets_client is None:
        st.sidebar.warning("Running without Google Sheets. Data is not shared.")

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(balance_flow, expense_flow, current_user)
    elif page == "➕ Add Expense":
        render_add_expense_page(expense_flow, roster, current_user)
    elif page == "📜 History":
        render_history_page(expense_flow, roster, current_user)
    elif page == "🛒 Shopping List":
        render_shopping_page(shopping_flow, roster, current_user)
    elif page == "⚙️ Settings":
        render_settings_page(sheets_client)


def render_profile_page(roster: Roster):
    """Ask who is using the app."""
    st.title("🏠 Who's there?")

    cols = st.columns(len(roster))
    for col, member in zip(cols, roster.members):
        with col:
            label = f"{member.avatar or '👤'} {member.name}"
            if st.button(label, key=f"profile_{member.id}"):
                st.session_state.current_user = member.id
                st.rerun()


def render_dashboard_page(
    balance_flow: BalanceFlow,
    expense_flow: ExpenseFlow,
    current_user: str,
):
    """Render balances and recent activity."""
    st.title("📊 Dashboard")
    roster = balance_flow.roster

    sheet = run_async(balance_flow.get_balances())

    if balance_flow.last_error is not None:
        st.markdown(f"""
        <div class="error-box">
            <h4>Couldn't refresh balances</h4>
            <p>{balance_flow.last_error}</p>
            <p>Showing the last balances we could compute.</p>
        </div>
        """, unsafe_allow_html=True)

    if sheet is None:
        st.info("Balances will appear once the expense ledger can be read.")
        return

    mine = sheet.get(current_user)
    if mine is not None:
        st.markdown("### Your balance")
        if mine.is_settled:
            st.markdown('<div class="big-number">All settled 🎉</div>', unsafe_allow_html=True)
        else:
            label = "You are owed" if mine.net_balance > 0 else "You owe"
            st.markdown(
                f'<div class="big-number">{label} {money(abs(mine.net_balance))}</div>',
                unsafe_allow_html=True,
            )

        col1, col2 = st.columns(2)
        with col1:
            st.markdown("**You owe**")
            if not mine.owes:
                st.caption("Nobody")
            for creditor, amount in mine.owes.items():
                st.markdown(f"- {roster.display_name(creditor)}: {money(amount)}")
        with col2:
            st.markdown("**Owes you**")
            if not mine.owed_by:
                st.caption("Nobody")
            for debtor, amount in mine.owed_by.items():
                st.markdown(f"- {roster.display_name(debtor)}: {money(amount)}")

    st.markdown("---")
    st.markdown("### Everyone")
    cols = st.columns(len(roster))
    for col, member in zip(cols, roster.members):
        balance = sheet.get(member.id)
        with col:
            st.metric(
                label=f"{member.avatar or ''} {member.name}",
                value=money(balance.net_balance if balance else Decimal("0")),
            )
    st.caption(
        f"Computed from {sheet.expense_count} expenses at "
        f"{sheet.computed_at:%d %b %Y %H:%M}"
    )

    st.markdown("---")
    st.markdown("### Recent expenses")
    try:
        recent = run_async(expense_flow.list_expenses())[:5]
    except StorageError as e:
        st.error(f"Couldn't load expenses: {e}")
        return

    if not recent:
        st.info("No expenses yet. Use 'Add Expense' to record the first one.")
    for expense in recent:
        st.markdown(
            f"- **{expense.description}** {money(expense.amount)} "
            f"paid by {roster.display_name(expense.paid_by)} "
            f"({expense.date:%d %b})"
        )


def render_add_expense_page(
    expense_flow: ExpenseFlow,
    roster: Roster,
    current_user: str,
):
    """Render the add expense form."""
    st.title("➕ Add Expense")

    description = st.text_input("Description", placeholder="e.g., Vegetables from the market")
    amount = st.number_input("Amount", min_value=0.0, step=10.0, format="%.2f")

    col1, col2 = st.columns(2)
    with col1:
        paid_by = st.selectbox(
            "Paid by",
            options=roster.user_ids,
            index=roster.user_ids.index(current_user),
            format_func=roster.display_name,
        )
        expense_date = st.date_input("Date", value=date.today())
    with col2:
        category = st.selectbox(
            "Category",
            options=[c.value for c in ExpenseCategory],
        )
        split_type = st.radio(
            "Split",
            options=list(SplitType),
            format_func=lambda s: {
                SplitType.EQUAL: "Split equally",
                SplitType.CUSTOM: "Custom amounts",
                SplitType.FULL_PAYMENT: "I paid for others",
            }[s],
        )

    total = Decimal(str(amount))

    if split_type == SplitType.EQUAL:
        participants = st.multiselect(
            "Split between",
            options=roster.user_ids,
            default=roster.user_ids,
            format_func=roster.display_name,
        )
        split = EqualSplit(participants=participants)
    elif split_type == SplitType.CUSTOM:
        st.markdown("**Amount each person owes**")
        custom_splits = {}
        for member in roster.members:
            value = st.number_input(
                member.name,
                min_value=0.0,
                step=10.0,
                format="%.2f",
                key=f"custom_{member.id}",
            )
            if value > 0:
                custom_splits[member.id] = Decimal(str(value))
        split = CustomSplit(custom_splits=custom_splits)
        assigned = sum(custom_splits.values(), Decimal("0"))
        st.caption(f"Assigned {money(assigned)} of {money(total)}")
    else:
        loan_to = st.multiselect(
            "Paid for",
            options=[u for u in roster.user_ids if u != paid_by],
            format_func=roster.display_name,
        )
        split = FullPaymentSplit(loan_to=loan_to)

    notes = st.text_area("Notes (optional)")

    expense = Expense(
        description=description,
        amount=total,
        paid_by=paid_by,
        split=split,
        date=datetime.combine(expense_date, datetime.now().time()),
        category=category,
        notes=notes or None,
    )

    # Preview
    preview = expense_flow.preview_split(expense)
    with st.expander("👀 Preview", expanded=True):
        if not preview:
            st.caption("Nobody will owe anything for this expense.")
        for debtor, owed in preview.items():
            st.markdown(
                f"- {roster.display_name(debtor)} owes "
                f"{roster.display_name(paid_by)} {money(owed)}"
            )

    result, message = expense_flow.validate_expense(expense)
    if result.issues:
        st.markdown(message)

    if st.button("💾 Save Expense", type="primary", disabled=not result.is_valid):
        with st.spinner("Saving..."):
            try:
                run_async(expense_flow.record_expense(
                    expense,
                    correlation_id=create_correlation_id(),
                ))
                st.success("✅ Expense saved!")
            except ExpenseRejectedError as e:
                st.error(str(e))
            except StorageError as e:
                st.error(f"Couldn't save the expense: {e}")


def render_history_page(
    expense_flow: ExpenseFlow,
    roster: Roster,
    current_user: str,
):
    """Render the expense history with filters and summaries."""
    st.title("📜 History")

    try:
        expenses = run_async(expense_flow.list_expenses())
    except StorageError as e:
        st.error(f"Couldn't load expenses: {e}")
        return

    if not expenses:
        st.info("No expenses recorded yet.")
        return

    # Filters
    months = sorted(group_by_month(expenses).keys(), reverse=True)
    col1, col2, col3 = st.columns(3)
    with col1:
        month_filter = st.selectbox(
            "Month",
            options=[None] + months,
            format_func=lambda m: "All months" if m is None else m,
        )
    with col2:
        payer_filter = st.selectbox(
            "Paid by",
            options=[None] + roster.user_ids,
            format_func=lambda u: "Anyone" if u is None else roster.display_name(u),
        )
    with col3:
        category_filter = st.selectbox(
            "Category",
            options=[None] + categories_used(expenses),
            format_func=lambda c: "All categories" if c is None else c,
        )

    shown = filter_expenses(expenses, paid_by=payer_filter, category=category_filter)
    if month_filter:
        shown = [e for e in shown if e.date.strftime("%Y-%m") == month_filter]

    st.metric("Total", money(total_expenses(shown)), f"{len(shown)} expenses", delta_color="off")

    with st.expander("📅 Monthly summary"):
        for key, summary in group_by_month(shown).items():
            st.markdown(f"- **{key}**: {money(summary.total)} ({summary.count} expenses)")
    with st.expander("🗓️ Daily summary"):
        for key, summary in sorted(group_by_day(shown).items(), reverse=True):
            st.markdown(f"- **{key}**: {money(summary.total)} ({summary.count} expenses)")

    st.download_button(
        "⬇️ Download CSV",
        data=expenses_to_csv(shown, roster),
        file_name=f"homesplit-{date.today().isoformat()}.csv",
        mime="text/csv",
    )

    st.markdown("---")
    for expense in shown:
        with st.container():
            col1, col2 = st.columns([5, 1])
            with col1:
                st.markdown(
                    f"**{expense.description}** {money(expense.amount)}  \n"
                    f"{expense.date:%d %b %Y %H:%M} · paid by "
                    f"{roster.display_name(expense.paid_by)} · "
                    f"{expense.category or 'Uncategorized'}"
                )
            with col2:
                if st.button("🗑️", key=f"delete_{expense.id}"):
                    run_async(expense_flow.delete_expense(expense.id, actor=current_user))
                    st.rerun()


def render_shopping_page(
    shopping_flow: ShoppingFlow,
    roster: Roster,
    current_user: str,
):
    """Render the shared shopping list."""
    st.title("🛒 Shopping List")

    with st.form("add_item", clear_on_submit=True):
        col1, col2, col3 = st.columns([3, 1, 1])
        with col1:
            name = st.text_input("Item")
        with col2:
            quantity = st.text_input("Quantity")
        with col3:
            priority = st.selectbox(
                "Priority",
                options=list(ItemPriority),
                index=1,
                format_func=lambda p: p.value.title(),
            )
        assigned_to = st.selectbox(
            "Who's buying?",
            options=[None] + roster.user_ids,
            format_func=lambda u: "Anyone" if u is None else roster.display_name(u),
        )
        if st.form_submit_button("Add") and name.strip():
            run_async(shopping_flow.add_item(
                name=name,
                added_by=current_user,
                quantity=quantity,
                assigned_to=assigned_to,
                priority=priority,
            ))
            st.rerun()

    try:
        items = run_async(shopping_flow.list_items())
    except StorageError as e:
        st.error(f"Couldn't load the shopping list: {e}")
        return

    if not items:
        st.info("The list is empty.")
        return

    for item in items:
        col1, col2 = st.columns([5, 1])
        with col1:
            label = item.name + (f" ({item.quantity})" if item.quantity else "")
            if item.priority == ItemPriority.HIGH:
                label = "❗ " + label
            checked = st.checkbox(label, value=item.completed, key=f"item_{item.id}")
            if checked != item.completed:
                run_async(shopping_flow.set_completed(item.id, checked, actor=current_user))
                st.rerun()
        with col2:
            if st.button("🗑️", key=f"delete_item_{item.id}"):
                run_async(shopping_flow.delete_item(item.id, actor=current_user))
                st.rerun()

    if any(item.completed for item in items):
        if st.button("Clear bought items"):
            removed = run_async(shopping_flow.clear_completed(actor=current_user))
            st.success(f"Removed {removed} items")
            st.rerun()


def render_settings_page(sheets_client):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Household", "household"),
        ("Google Sheets (Storage)", "google_sheets"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if sheets_client is None:
        st.warning("Google Sheets is not connected. Expenses are kept in memory only.")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with the household "
        "members and Google Sheets details. See `.env.example` for the variables."
    )


if __name__ == "__main__":
    main()

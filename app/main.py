"""
Streamlit Frontend for Finance Pro

The web channel: a chat that records transactions as you talk, and a
dashboard over what was recorded.

DESIGN PRINCIPLES:
1. One text box - the user just says what they spent or earned
2. Every recorded transaction is shown under the reply that recorded it
3. Technical errors never reach the chat (fixed apology instead)
4. Clearing history is an explicit, confirmed action

State lives in two local JSON files (chat log and transactions) so a
browser refresh keeps the conversation.
"""

import asyncio
from decimal import Decimal

import streamlit as st

from finance_pro.audit import configure_logging
from finance_pro.config import get_settings, validate_all_settings
from finance_pro.models.transaction import ChatMessage, ChatRole, Transaction
from finance_pro.orchestrator import ChatTurnFlow, create_web_components
from finance_pro.queries import (
    StatsPeriod,
    compute_stats,
    daily_series,
    filter_by_period,
    recent,
)


# Page configuration
st.set_page_config(
    page_title="Finance Pro AI",
    page_icon="💎",
    layout="wide",
    initial_sidebar_state="expanded",
)

PERIOD_LABELS = {
    StatsPeriod.TODAY: "Hoje",
    StatsPeriod.WEEK: "Semana",
    StatsPeriod.MONTH: "Mês",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def format_brl(value: Decimal) -> str:
    """R$ 1.234,56"""
    text = f"{value:,.2f}"
    return "R$ " + text.replace(",", "_").replace(".", ",").replace("_", ".")


@st.cache_resource
def get_chat_flow() -> ChatTurnFlow:
    """Get or create the web chat flow (cached)."""
    configure_logging(get_settings().app.log_level)
    return create_web_components()


def main():
    """Main application entry point."""
    st.sidebar.title("💎 Finance Pro AI")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navegação",
        ["📊 Dashboard", "💬 Chat", "⚙️ Configurações"],
        index=1,
    )

    if page == "⚙️ Configurações":
        render_settings_page()
        return

    try:
        flow = get_chat_flow()
    except Exception as e:
        st.error(f"Falha ao iniciar: {e}")
        st.info("Verifique a página de Configurações.")
        return

    if page == "📊 Dashboard":
        render_dashboard_page(flow)
    else:
        render_chat_page(flow)


def render_transaction_card(tx: Transaction):
    """Compact view of a recorded transaction."""
    sign = "+" if tx.is_income else "-"
    st.caption(
        f"{'🟢' if tx.is_income else '🔴'} {sign}{format_brl(tx.amount)} · "
        f"{tx.category} · {tx.description}"
    )


def render_message(message: ChatMessage):
    with st.chat_message(message.role.value):
        st.markdown(message.content)
        if message.transaction is not None:
            render_transaction_card(message.transaction)


def render_chat_page(flow: ChatTurnFlow):
    """Render the chat page."""
    st.title("💬 Chat")

    welcome = flow.welcome_message()
    if welcome is not None:
        render_message(welcome)

    for message in flow.list_messages():
        render_message(message)

    text = st.chat_input("Ex: gastei 50 no almoço")
    if text:
        render_message(ChatMessage(role=ChatRole.USER, content=text))
        with st.spinner("Registrando..."):
            reply = run_async(flow.handle_message(text))
        render_message(reply)

    st.sidebar.markdown("---")
    with st.sidebar.expander("🗑️ Limpar histórico"):
        st.warning("Apaga todas as mensagens e transações salvas neste dispositivo.")
        if st.button("Confirmar limpeza", type="primary"):
            run_async(flow.clear_history())
            st.rerun()


def render_dashboard_page(flow: ChatTurnFlow):
    """Render the dashboard page."""
    st.title("📊 Dashboard")

    period = st.radio(
        "Período",
        options=list(StatsPeriod),
        index=2,
        format_func=lambda p: PERIOD_LABELS[p],
        horizontal=True,
    )

    transactions = flow.list_transactions()
    stats = compute_stats(filter_by_period(transactions, period))

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Receitas", format_brl(stats.total_income))
    col2.metric("Despesas", format_brl(stats.total_expenses))
    col3.metric("Saldo", format_brl(stats.balance))
    col4.metric("Maior categoria", stats.top_category or "—")

    st.markdown("### Últimos 7 dias")
    series = daily_series(transactions, days=7)
    st.bar_chart(
        {
            "dia": [point.day.strftime("%d/%m") for point in series],
            "Receitas": [float(point.income) for point in series],
            "Despesas": [float(point.expenses) for point in series],
        },
        x="dia",
        y=["Receitas", "Despesas"],
    )

    st.markdown("### Movimentações recentes")
    latest = recent(transactions, limit=5)
    if not latest:
        st.info("Nenhuma movimentação registrada ainda. Use o Chat para começar.")
    for tx in latest:
        render_transaction_card(tx)


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Configurações")

    st.markdown("### Status das conexões")

    status = validate_all_settings()

    services = [
        ("Gemini (IA)", "gemini"),
        ("Telegram (bot)", "telegram"),
        ("Google Sheets (armazenamento dos bots)", "google_sheets"),
        ("Aplicação", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configurado")
        else:
            error = status.get(f"{key}_error", "Não configurado")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuração")
    st.markdown(
        "Crie um arquivo `.env` com suas chaves. "
        "Veja `.env.example` para as variáveis necessárias."
    )


if __name__ == "__main__":
    main()

"""
================================================================================
ANALYTICS AND VISUALIZATION UTILITIES
================================================================================

Purpose: Plotly charts for the admin dashboard. Figure builders are pure
functions of already loaded rows so they can be reused and tested; the
render_* function lays them out with Streamlit.
================================================================================
"""

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from utils.constants import LEVELS, REQUEST_STATUSES

# =============================================================================
# CHART STYLING
# =============================================================================

def _apply_layout(fig, title, xaxis_title, yaxis_title):
    fig.update_layout(
        title=dict(text=title, x=0.5, xanchor='center', font=dict(size=18, family='Arial', color='#000000')),
        xaxis_title=xaxis_title,
        yaxis_title=yaxis_title,
        height=300,
        margin=dict(l=20, r=20, t=50, b=20),
        paper_bgcolor='#FFFFFF',
        plot_bgcolor='rgba(0,0,0,0)',
        font=dict(family='Inter, system-ui, sans-serif', size=12),
        xaxis=dict(gridcolor='rgba(108, 117, 125, 0.1)', showgrid=True),
        yaxis=dict(gridcolor='rgba(108, 117, 125, 0.1)', showgrid=True)
    )
    return fig

# =============================================================================
# FIGURE BUILDERS
# =============================================================================

def players_by_level_figure(profiles):
    """Bar chart of player count per level."""
    counts = {level: 0 for level in LEVELS}
    for profile in profiles:
        level = profile.get("level") or "beginner"
        counts[level] = counts.get(level, 0) + 1
    fig = go.Figure(data=[
        go.Bar(
            x=[level.capitalize() for level in counts],
            y=list(counts.values()),
            marker_color=['#16A34A', '#F59E0B', '#DC2626'],
        )
    ])
    return _apply_layout(fig, "Players by Level", "Level", "Players")


def monthly_revenue(orders):
    """Approved revenue per month as a DataFrame (month, revenue)."""
    approved = [o for o in orders if o.get("payment_status") == "approved" and o.get("created_at")]
    if not approved:
        return pd.DataFrame(columns=["month", "revenue"])
    df = pd.DataFrame(approved)
    df["month"] = pd.to_datetime(df["created_at"], utc=True).dt.strftime("%Y-%m")
    df["revenue"] = df["total_amount"].astype(float)
    return df.groupby("month", as_index=False)["revenue"].sum().sort_values("month")


def revenue_figure(orders):
    data = monthly_revenue(orders)
    fig = go.Figure(data=[
        go.Bar(
            x=data["month"].tolist(),
            y=data["revenue"].tolist(),
            marker_color='#2E86AB',
        )
    ])
    return _apply_layout(fig, "Approved Revenue by Month", "Month", "Revenue (MMK)")


def requests_by_status_figure(requests):
    counts = {status: 0 for status in REQUEST_STATUSES}
    for request in requests:
        status = request.get("status")
        if status in counts:
            counts[status] += 1
    fig = go.Figure(data=[
        go.Bar(
            x=[status.capitalize() for status in counts],
            y=list(counts.values()),
            marker_color='#F77F00',
        )
    ])
    return _apply_layout(fig, "Partner Requests by Status", "Status", "Requests")

# =============================================================================
# DASHBOARD
# =============================================================================

def render_admin_analytics(profiles, orders, requests):
    """Three charts side by side on the admin dashboard."""
    col1, col2, col3 = st.columns(3)
    with col1:
        st.plotly_chart(players_by_level_figure(profiles), width="stretch")
    with col2:
        if orders:
            st.plotly_chart(revenue_figure(orders), width="stretch")
        else:
            st.info("No orders yet.")
    with col3:
        st.plotly_chart(requests_by_status_figure(requests), width="stretch")

"""pages.account

Sign in and registration. New players start with a three month trial
membership; the profile row is created by a database trigger from the
registration metadata.
"""

from datetime import date

import streamlit as st

from utils.auth import is_logged_in, sign_in, sign_up
from utils.constants import GENDERS, LEVELS
from utils.layout import render_sidebar

st.set_page_config(page_title="Account · ShuttleMatch", page_icon="🔑")
render_sidebar()

st.title("🔑 Account")

if is_logged_in():
    st.success("✅ You are signed in.")
    st.page_link("pages/profile.py", label="Go to my profile", icon="👤")
    st.stop()

tab_login, tab_register = st.tabs(["Sign in", "Register"])

# === TAB 1: SIGN IN ===
with tab_login:
    with st.form("login_form"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in", type="primary")
    if submitted:
        try:
            sign_in(email, password)
        except Exception as e:
            st.error(f"❌ {e}")
        else:
            st.success("Welcome back!")
            st.rerun()

# === TAB 2: REGISTER ===
with tab_register:
    st.caption("Registration is free and includes a 3 month trial membership.")
    with st.form("register_form"):
        name = st.text_input("Full name *")
        reg_email = st.text_input("Email *")
        col1, col2 = st.columns(2)
        with col1:
            reg_password = st.text_input("Password *", type="password", help="At least 6 characters")
        with col2:
            reg_confirm = st.text_input("Confirm password *", type="password")
        phone = st.text_input("Phone")
        col1, col2, col3 = st.columns(3)
        with col1:
            gender = st.selectbox("Gender", [None] + GENDERS, format_func=lambda g: "Prefer not to say" if g is None else g.capitalize())
        with col2:
            date_of_birth = st.date_input("Date of birth", value=None, min_value=date(1940, 1, 1), max_value=date.today())
        with col3:
            level = st.selectbox("Playing level", LEVELS, format_func=str.capitalize)
        registered = st.form_submit_button("Create account", type="primary")

    if registered:
        if reg_password != reg_confirm:
            st.error("❌ Passwords do not match")
        else:
            try:
                signed_in = sign_up(reg_email, reg_password, name, phone, gender, date_of_birth, level)
            except Exception as e:
                st.error(f"❌ {e}")
            else:
                if signed_in:
                    st.success("🎉 Welcome to ShuttleMatch!")
                    st.rerun()
                else:
                    st.success("🎉 Account created. Please check your email to confirm it, then sign in.")

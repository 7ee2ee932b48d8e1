"""
Admin: News Posts
=================
"""

import streamlit as st

from config import get_config
from components.posts_admin import get_posts_store, is_logged_in, render_login, render_posts_admin

st.set_page_config(page_title="Admin - News Posts", page_icon="🛠️", layout="wide")

config = get_config()
st.title("🛠️ News Posts")

if not is_logged_in():
    render_login(config)
else:
    if st.sidebar.button("Log out"):
        st.session_state['admin_logged_in'] = False
        st.rerun()
    render_posts_admin(get_posts_store(config))

"""
Posts Admin Component
=====================

Admin editor for news posts backed by a PostsStore held in the session.
Access requires the session to be logged in (ADMIN_PASSWORD).
"""

import hmac
import streamlit as st
from typing import MutableMapping, Optional

from config import Config
from posts_store import PostsStore


def get_posts_store(config: Config, state: Optional[MutableMapping] = None) -> PostsStore:
    """Session-scoped store, seeded on first use"""
    state = st.session_state if state is None else state
    if 'posts_store' not in state:
        state['posts_store'] = PostsStore.from_json(config.posts_seed_path)
    return state['posts_store']


def is_logged_in(state: Optional[MutableMapping] = None) -> bool:
    state = st.session_state if state is None else state
    return bool(state.get('admin_logged_in', False))


def log_in(config: Config, password: str, state: Optional[MutableMapping] = None) -> bool:
    """Mark the session as logged in if the password matches"""
    state = st.session_state if state is None else state
    if not config.admin_password:
        return False
    ok = hmac.compare_digest(password.encode('utf-8'), config.admin_password.encode('utf-8'))
    state['admin_logged_in'] = ok
    return ok


def render_login(config: Config):
    if not config.admin_password:
        st.warning("Admin access is disabled. Set ADMIN_PASSWORD to enable it.")
        return

    with st.form("admin_login"):
        password = st.text_input("Password", type="password")
        if st.form_submit_button("Log in"):
            if log_in(config, password):
                st.rerun()
            else:
                st.error("Incorrect password")


def render_posts_admin(store: PostsStore):
    """Render the post list with actions"""
    if st.button("➕ New draft", type="primary"):
        store.create_post()
        st.rerun()

    for post in store.posts:
        with st.container(border=True):
            col1, col2 = st.columns([3, 2])
            with col1:
                badge = "📌 " if post.pinned else ""
                st.markdown(f"**{badge}{post.title}**  \n{post.author} · {post.published_at} · `{post.status}`")
                st.caption(post.excerpt)
            with col2:
                actions = st.columns(6)
                if actions[0].button("↑", key=f"up_{post.id}"):
                    store.move_post(post.id, "up")
                    st.rerun()
                if actions[1].button("↓", key=f"down_{post.id}"):
                    store.move_post(post.id, "down")
                    st.rerun()
                if actions[2].button("📌", key=f"pin_{post.id}"):
                    store.toggle_pin(post.id)
                    st.rerun()
                publish_label = "Unpublish" if post.status == "published" else "Publish"
                if actions[3].button(publish_label, key=f"pub_{post.id}"):
                    if post.status == "published":
                        store.unpublish_post(post.id)
                    else:
                        store.publish_post(post.id)
                    st.rerun()
                if actions[4].button("⧉", key=f"dup_{post.id}"):
                    store.duplicate_post(post.id)
                    st.rerun()
                if actions[5].button("🗑", key=f"del_{post.id}"):
                    store.delete_post(post.id)
                    st.rerun()

            with st.expander("Edit", expanded=False):
                with st.form(f"edit_{post.id}"):
                    title = st.text_input("Title", value=post.title)
                    author = st.text_input("Author", value=post.author)
                    excerpt = st.text_area("Excerpt", value=post.excerpt)
                    content = st.text_area("Content", value=post.content, height=200)
                    tags = st.text_input("Tags (comma-separated)", value=", ".join(post.tags))
                    if st.form_submit_button("Save"):
                        store.update_post(
                            post.id,
                            title=title,
                            author=author,
                            excerpt=excerpt,
                            content=content,
                            tags=[t.strip() for t in tags.split(',') if t.strip()],
                        )
                        st.rerun()

    if store.deleted_posts:
        st.markdown("---")
        st.subheader("🗑 Trash")
        for post in store.deleted_posts:
            col1, col2, col3 = st.columns([4, 1, 1])
            col1.write(post.title)
            if col2.button("Restore", key=f"restore_{post.id}"):
                store.restore_post(post.id)
                st.rerun()
            if col3.button("Delete forever", key=f"purge_{post.id}"):
                store.delete_permanently(post.id)
                st.rerun()

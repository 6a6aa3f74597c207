"""pages.community

Community feed: share posts, like them and see who liked what.
"""

import streamlit as st

from utils import community, db
from utils.auth import current_user_id, is_logged_in
from utils.constants import POST_MAX_LENGTH
from utils.formatting import format_datetime, render_avatar
from utils.layout import render_sidebar, run_action
from utils.validation import sanitize_html

st.set_page_config(page_title="Community · ShuttleMatch", page_icon="💬", layout="wide")
render_sidebar()

st.title("💬 Community")
st.caption("Share results, find training buddies and talk badminton")

user_id = current_user_id() if is_logged_in() else None

if user_id:
    with st.form("new_post", clear_on_submit=True):
        content = st.text_area("What's on your mind?", max_chars=POST_MAX_LENGTH)
        submitted = st.form_submit_button("Post", type="primary")
    if submitted:
        if run_action(lambda: community.create_post(user_id, content), "Posted"):
            st.rerun()
else:
    st.page_link("pages/account.py", label="Sign in to post and like", icon="🔑")

posts = db.get_posts()
likes = db.get_post_likes([p["id"] for p in posts])
liked_by = community.likes_by_post(likes)
authors = db.get_profiles_by_ids({p["user_id"] for p in posts} | {l["user_id"] for l in likes})

if not posts:
    st.info("No posts yet. Be the first!")

for post in posts:
    author = authors.get(post.get("user_id")) or {}
    with st.container(border=True):
        col1, col2 = st.columns([1, 12])
        with col1:
            st.markdown(render_avatar(author.get("name"), author.get("profile_photo"), size=40), unsafe_allow_html=True)
        with col2:
            st.markdown(f"**{sanitize_html(author.get('name') or 'Unknown')}** · {format_datetime(post.get('created_at'))}")
            st.markdown(sanitize_html(post.get("content") or ""))

        post_likers = liked_by.get(post["id"], [])
        b1, b2, b3 = st.columns([1, 2, 6])
        with b1:
            heart = "❤️" if user_id in post_likers else "🤍"
            if st.button(f"{heart} {post.get('likes_count') or 0}", key=f"like_{post['id']}", disabled=not user_id):
                if run_action(lambda: community.toggle_like(post["id"], user_id), "Updated"):
                    st.rerun()
        with b2:
            if post_likers:
                with st.popover("Liked by"):
                    for name in community.likers(post["id"], likes, authors):
                        st.markdown(f"- {sanitize_html(name)}")
        with b3:
            if user_id and post.get("user_id") == user_id and st.button("🗑️ Delete", key=f"delete_{post['id']}"):
                if run_action(lambda: community.delete_post(post, user_id), "Post deleted"):
                    st.rerun()

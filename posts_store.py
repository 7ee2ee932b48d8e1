"""
Posts Store
===========

Admin content store for news posts.

The store is an explicit object handed to whoever edits posts (one per admin
session); there is no module-level instance. Posts keep an `order` field that
always equals their index in the list.

Operations:
- create, update, duplicate
- publish / unpublish, toggle pin
- delete (to trash), restore, delete permanently
- move up / down
"""

import json
import logging
import random
import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

PLACEHOLDER_THUMBNAILS = [
    "/Images/Logos/Placeholders/Placeholder.png",
    "/Images/Logos/Placeholders/Placeholder 2.png",
]


@dataclass
class Post:
    """News post record"""
    id: str
    title: str = "Untitled Draft"
    author: str = "Editorial Team"
    excerpt: str = "Outline the key insights for this update."
    content: str = ""
    links: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=lambda: ["Draft"])
    published_at: str = field(default_factory=lambda: datetime.now().isoformat())
    pinned: bool = False
    status: str = "draft"  # draft, published
    thumbnail: str = PLACEHOLDER_THUMBNAILS[0]
    reading_time: str = "3 min read"
    order: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Post':
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    @classmethod
    def from_news_item(cls, item: Dict[str, Any], order: int) -> 'Post':
        """Build a post from a content/news.json entry"""
        return cls(
            id=str(item['id']),
            title=item.get('title', ''),
            author=item.get('author', ''),
            excerpt=item.get('preview', ''),
            tags=list(item.get('tags', [])),
            pinned=bool(item.get('pinned')),
            status=item.get('status') or "draft",
            published_at=item.get('date', ''),
            thumbnail=item.get('thumbnail', ''),
            reading_time=item.get('readingTime', ''),
            order=order,
        )


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


class PostsStore:
    """In-memory post list with trash"""

    def __init__(self, posts: Optional[List[Post]] = None):
        self.posts: List[Post] = []
        self.deleted_posts: List[Post] = []
        self._set_posts(posts or [])

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> 'PostsStore':
        """Seed the store from a news JSON file (missing file = empty store)"""
        path = Path(path)
        if not path.exists():
            logger.warning(f"Posts seed file not found: {path}")
            return cls()
        with open(path, 'r', encoding='utf-8') as f:
            items = json.load(f)
        return cls([Post.from_news_item(item, i) for i, item in enumerate(items)])

    def _set_posts(self, posts: List[Post]):
        self.posts = [replace(post, order=i) for i, post in enumerate(posts)]

    def _index(self, post_id: str) -> int:
        for i, post in enumerate(self.posts):
            if post.id == post_id:
                return i
        return -1

    def get(self, post_id: str) -> Optional[Post]:
        index = self._index(post_id)
        return self.posts[index] if index >= 0 else None

    # ==================== CREATE / UPDATE ====================

    def create_post(self, **overrides: Any) -> Post:
        """Create a draft at the top of the list"""
        base = Post(
            id=_new_id("post"),
            thumbnail=random.choice(PLACEHOLDER_THUMBNAILS),
        )
        post = replace(base, **overrides)
        self._set_posts([post] + self.posts)
        return self.posts[0]

    def update_post(self, post_id: str, **changes: Any):
        index = self._index(post_id)
        if index < 0:
            return
        changes.pop('order', None)
        self.posts[index] = replace(self.posts[index], **changes)

    def duplicate_post(self, post_id: str) -> Optional[Post]:
        """Insert an unpinned draft copy right after the source"""
        index = self._index(post_id)
        if index < 0:
            return None
        source = self.posts[index]
        clone = replace(
            source,
            id=_new_id(f"{source.id}-copy"),
            title=f"{source.title} (Copy)",
            pinned=False,
            status="draft",
            tags=list(source.tags),
            links=list(source.links),
        )
        posts = list(self.posts)
        posts.insert(index + 1, clone)
        self._set_posts(posts)
        return self.posts[index + 1]

    # ==================== STATUS ====================

    def publish_post(self, post_id: str):
        self.update_post(post_id, status="published")

    def unpublish_post(self, post_id: str):
        self.update_post(post_id, status="draft")

    def toggle_pin(self, post_id: str):
        post = self.get(post_id)
        if post:
            self.update_post(post_id, pinned=not post.pinned)

    # ==================== DELETE / RESTORE ====================

    def delete_post(self, post_id: str):
        """Move a post to the trash"""
        index = self._index(post_id)
        if index < 0:
            return
        target = self.posts[index]
        self._set_posts(self.posts[:index] + self.posts[index + 1:])
        self.deleted_posts.insert(0, target)

    def restore_post(self, post_id: str):
        """Bring a trashed post back to the top"""
        for i, post in enumerate(self.deleted_posts):
            if post.id == post_id:
                del self.deleted_posts[i]
                self._set_posts([post] + self.posts)
                return

    def delete_permanently(self, post_id: str):
        self.deleted_posts = [post for post in self.deleted_posts if post.id != post_id]

    # ==================== ORDER ====================

    def move_post(self, post_id: str, direction: str):
        """Swap a post with its neighbour; direction is 'up' or 'down'"""
        if direction not in ("up", "down"):
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
        index = self._index(post_id)
        if index < 0:
            return
        swap = index - 1 if direction == "up" else index + 1
        if swap < 0 or swap >= len(self.posts):
            return
        posts = list(self.posts)
        posts[index], posts[swap] = posts[swap], posts[index]
        self._set_posts(posts)

    def published(self) -> List[Post]:
        """Published posts, pinned first"""
        live = [post for post in self.posts if post.status == "published"]
        return sorted(live, key=lambda post: (not post.pinned, post.order))

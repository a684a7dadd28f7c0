"""
View state for the public pages and the admin console.

Each screen keeps one explicit state model. Derived values (available
categories and tags, visible items) are computed on read from the current
items and filters, so nothing has to be re-synchronised after navigation.
"""

from typing import Callable, Dict, Iterable, List, Optional, TypeVar

import requests
from pydantic import BaseModel

from client import APIError, PortfolioClient
from rendering import render_markdown
from resources import Collection

ALL = "all"
DELIMITER = "|"
ARRAY_FIELDS = ("technologies", "achievements", "highlights", "tags")
RATE_LIMITED_MESSAGE = "Too many requests. Please wait a moment and refresh the page."

T = TypeVar("T")


# =================
# Pure derivations
# =================
def _distinct(values: Iterable[Optional[str]]) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


def available_categories(items: List[dict]) -> List[str]:
    return _distinct(item.get("category") for item in items)


def available_tags(items: List[dict], category: str = ALL) -> List[str]:
    """Distinct tags, limited to items of `category` unless it is ALL."""
    scoped = items if category == ALL else [i for i in items if i.get("category") == category]
    return _distinct(tag for item in scoped for tag in item.get("tags") or [])


def matches_search(item: dict, term: str, fields=("title", "description", "category")) -> bool:
    if not term:
        return True
    term = term.lower()
    if any(term in (item.get(field) or "").lower() for field in fields):
        return True
    return any(term in tag.lower() for tag in item.get("tags") or [])


def filter_items(items: List[dict], category: str = ALL, tag: str = ALL,
                 type_: Optional[str] = None, search: str = "") -> List[dict]:
    return [
        item for item in items
        if matches_search(item, search)
        and (category == ALL or item.get("category") == category)
        and (tag == ALL or tag in (item.get("tags") or []))
        and (not type_ or item.get("type") == type_)
    ]


def featured(items: List[dict]) -> List[dict]:
    return [item for item in items if item.get("featured")]


def split_field(value: str) -> List[str]:
    return [part.strip() for part in value.split(DELIMITER) if part.strip()]


def join_field(values: List[str]) -> str:
    return f" {DELIMITER} ".join(values)


# ============
# Public pages
# ============
class GalleryView(BaseModel):
    items: List[dict] = []
    category: str = ALL
    tag: str = ALL
    search: str = ""

    @property
    def categories(self) -> List[str]:
        return available_categories(self.items)

    @property
    def tags(self) -> List[str]:
        return available_tags(self.items, self.category)

    @property
    def visible(self) -> List[dict]:
        return filter_items(self.items, self.category, self.tag, search=self.search)

    def select_category(self, category: str):
        self.category = category
        self.tag = ALL


class BlogListView(BaseModel):
    posts: List[dict] = []
    search: str = ""
    tag: str = ""

    @property
    def tags(self) -> List[str]:
        return available_tags(self.posts)

    @property
    def visible(self) -> List[dict]:
        return [
            post for post in self.posts
            if matches_search(post, self.search, fields=("title", "excerpt"))
            and (not self.tag or self.tag in (post.get("tags") or []))
        ]


class BlogPostView(BaseModel):
    post: dict
    html: str


class HomeView(BaseModel):
    work: List[dict] = []
    education: List[dict] = []
    volunteer: List[dict] = []
    projects: List[dict] = []
    skills: List[dict] = []
    courses: List[dict] = []

    @classmethod
    def from_api(cls, experience: List[dict], projects: List[dict],
                 skills: List[dict], courses: List[dict]) -> "HomeView":
        shown = featured(experience)
        return cls(
            work=[e for e in shown if e.get("type") == "work"],
            education=[e for e in shown if e.get("type") == "education"],
            volunteer=[e for e in shown if e.get("type") == "volunteer"],
            projects=featured(projects),
            skills=featured(skills),
            courses=featured(courses),
        )


class LoadError(Exception):
    """A page could not load; `message` is what the visitor sees."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _load(fetch: Callable[[], T], failure_message: str) -> T:
    try:
        return fetch()
    except APIError as e:
        raise LoadError(RATE_LIMITED_MESSAGE if e.rate_limited else failure_message) from e
    except requests.RequestException as e:
        raise LoadError(failure_message) from e


def load_home(client: PortfolioClient) -> HomeView:
    def fetch():
        return HomeView.from_api(
            client.list(Collection.EXPERIENCE),
            client.list(Collection.PROJECTS),
            client.list(Collection.SKILLS),
            client.list(Collection.COURSES),
        )
    return _load(fetch, "Failed to load content. Please try again later.")


def load_blog(client: PortfolioClient) -> BlogListView:
    posts = _load(lambda: client.list(Collection.BLOG), "Failed to load blog posts. Please try again later.")
    return BlogListView(posts=posts)


def load_post(client: PortfolioClient, slug: str) -> BlogPostView:
    post = _load(lambda: client.get_post(slug), "Post not found")
    return BlogPostView(post=post, html=render_markdown(post.get("content", "")))


def load_gallery(client: PortfolioClient) -> Dict[Collection, GalleryView]:
    def fetch():
        return {
            collection: GalleryView(items=featured(client.list(collection)))
            for collection in (Collection.PHOTOGRAPHY, Collection.VIDEOS, Collection.CREATIVES)
        }
    return _load(fetch, "Failed to load creative works. Please try again later.")


# =============
# Admin console
# =============
def item_to_form(collection: Collection, item: dict) -> dict:
    """Array fields become pipe-joined strings for editing."""
    form = dict(item)
    for field in ARRAY_FIELDS:
        if isinstance(form.get(field), list):
            form[field] = join_field(form[field])
    if collection is Collection.SKILLS and isinstance(form.get("skills"), list):
        form["skills"] = join_field([s["name"] for s in form["skills"]])
    return form


def form_to_payload(collection: Collection, form: dict) -> dict:
    data = dict(form)
    if collection is Collection.EXPERIENCE and not data.get("type"):
        data["type"] = "work"
    for field in ARRAY_FIELDS:
        if isinstance(data.get(field), str):
            data[field] = split_field(data[field])
    if collection is Collection.SKILLS and isinstance(data.get("skills"), str):
        data["skills"] = [{"name": name, "featured": True} for name in split_field(data["skills"])]
    return data


class AdminView(BaseModel):
    collection: Collection = Collection.BLOG
    items: List[dict] = []
    type_filter: str = "work"
    category: str = ALL
    tag: str = ALL
    editing_id: Optional[str] = None
    message: str = ""

    def switch(self, collection: Collection):
        self.collection = Collection(collection)
        self.items = []
        self.type_filter = "work"
        self.category = ALL
        self.tag = ALL
        self.editing_id = None
        self.message = ""

    @property
    def categories(self) -> List[str]:
        return available_categories(self.items)

    @property
    def tags(self) -> List[str]:
        return available_tags(self.items)

    @property
    def visible(self) -> List[dict]:
        type_ = self.type_filter if self.collection is Collection.EXPERIENCE else None
        return filter_items(self.items, self.category, self.tag, type_=type_)

    def select_category(self, category: str):
        self.category = category
        self.tag = ALL

    def move(self, item_id: str, direction: str) -> Optional[List[dict]]:
        """Swap an item with its neighbour in the full list.

        Updates `items` straight away and returns the complete `{id, order}`
        list to send to the reorder endpoint, or None when the move is not
        possible (item hidden by filters, or already at the edge).
        """
        if direction not in ("up", "down"):
            raise ValueError(f"direction must be 'up' or 'down', not {direction!r}")
        if item_id not in [item["id"] for item in self.visible]:
            return None
        index = [item["id"] for item in self.items].index(item_id)
        swap = index - 1 if direction == "up" else index + 1
        if swap < 0 or swap >= len(self.items):
            return None
        items = list(self.items)
        items[index], items[swap] = items[swap], items[index]
        self.items = [dict(item, order=position) for position, item in enumerate(items)]
        return [{"id": item["id"], "order": item["order"]} for item in self.items]

    # Actions against the API. Failures land in `message`; nothing is rolled back.
    def load(self, client: PortfolioClient):
        try:
            if self.collection is Collection.BLOG:
                self.items = client.list_all_posts()
            else:
                self.items = client.list(self.collection)
        except APIError:
            self.message = "Error loading items"

    def edit(self, item: dict) -> dict:
        self.editing_id = item["id"]
        self.message = ""
        return item_to_form(self.collection, item)

    def submit(self, client: PortfolioClient, form: dict) -> bool:
        payload = form_to_payload(self.collection, form)
        try:
            if self.editing_id:
                client.update(self.collection, self.editing_id, payload)
                self.message = "Updated successfully!"
            else:
                client.create(self.collection, payload)
                self.message = "Created successfully!"
        except APIError as e:
            # the caller keeps the form as typed so it can be corrected
            self.message = f"Error: {e.message}"
            return False
        self.editing_id = None
        self.load(client)
        return True

    def delete(self, client: PortfolioClient, item_id: str) -> bool:
        try:
            client.delete(self.collection, item_id)
        except APIError as e:
            self.message = f"Error: {e.message}"
            return False
        self.message = "Deleted successfully!"
        self.load(client)
        return True

    def reorder(self, client: PortfolioClient, item_id: str, direction: str) -> bool:
        updates = self.move(item_id, direction)
        if updates is None:
            return False
        try:
            client.reorder(self.collection, updates)
        except APIError as e:
            self.message = f"Error: {e.message}"
            return False
        self.message = "Order updated!"
        return True

    def attach_image(self, client: PortfolioClient, form: dict, data: bytes, filename: str,
                     content_type: str, field: str = "imageUrl") -> dict:
        """Upload an image and put its URL in `form[field]`.

        Upload errors propagate so the submission in progress is abandoned.
        """
        result = client.upload(data, filename, content_type, folder=self.collection.value)
        return dict(form, **{field: result["url"]})

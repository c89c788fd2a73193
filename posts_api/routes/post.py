import logging
from typing import Any
from fastapi import APIRouter, Body, Depends, HTTPException
from posts_api.database import get_store
from posts_api.models import PostIn
from posts_api.store import PostStore, StoreError

logger = logging.getLogger(__name__)

# Response messages
NOT_FOUND = "The post with the specified ID does not exist"
MISSING_FIELDS = "Please provide title and contents for the post"
NOT_RETRIEVED = "The posts information could not be retrieved"
NOT_SAVED = "There was an error while saving the post to the database"
NOT_MODIFIED = "The posts information could not be modified"
NOT_REMOVED = "The post could not be removed"

router = APIRouter()

# Numbers are kept as text, falsy values and other types count as missing
def text(value):
    if not value or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return None

# Any JSON body is accepted, only an object can carry title and contents
def fields(payload: Any) -> PostIn:
    if not isinstance(payload, dict):
        return PostIn()
    return PostIn(title=text(payload.get("title")), contents=text(payload.get("contents")))

# List all posts
@router.get("")
def list_posts(store: PostStore = Depends(get_store)):
    try:
        return store.find_all()
    except StoreError:
        logger.exception("List posts failed")
        raise HTTPException(status_code=500, detail=NOT_RETRIEVED)

# Get a single post
@router.get("/{post_id}")
def get_post(post_id: str, store: PostStore = Depends(get_store)):
    try:
        post = store.find_by_id(post_id)
    except StoreError:
        logger.exception(f"Get post {post_id} failed")
        raise HTTPException(status_code=500, detail=NOT_RETRIEVED)

    if not post:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return post

# Create a post, the new post is the last one in the listing
@router.post("", status_code=201)
def create_post(payload: Any = Body(None), store: PostStore = Depends(get_store)):
    body = fields(payload)
    title, contents = body.title, body.contents
    if not (title and contents):
        raise HTTPException(status_code=400, detail=MISSING_FIELDS)

    try:
        store.insert({"title": title, "contents": contents})
        posts = store.find_all()
    except StoreError:
        logger.exception("Create post failed")
        raise HTTPException(status_code=500, detail=NOT_SAVED)

    if not posts:
        logger.error("Post listing empty after insert")
        raise HTTPException(status_code=500, detail=NOT_SAVED)

    # TODO: take the id returned by insert once clients no longer depend on last-in-listing
    return posts[-1]

# Replace title and contents of a post
@router.put("/{post_id}")
def update_post(post_id: str, payload: Any = Body(None), store: PostStore = Depends(get_store)):
    body = fields(payload)
    title, contents = body.title, body.contents
    try:
        existing = store.find_by_id(post_id)
        if title and contents and existing:
            store.update(post_id, {"title": title, "contents": contents})
            return store.find_by_id(post_id)
    except StoreError:
        logger.exception(f"Update post {post_id} failed")
        raise HTTPException(status_code=500, detail=NOT_MODIFIED)

    if not existing:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    if not title or not contents:
        raise HTTPException(status_code=400, detail=MISSING_FIELDS)
    raise HTTPException(status_code=400, detail="Something crazy is going on")

# Delete a post and return it as it was before removal
@router.delete("/{post_id}")
def delete_post(post_id: str, store: PostStore = Depends(get_store)):
    try:
        post = store.find_by_id(post_id)
        if post:
            store.remove(post_id)
    except StoreError:
        logger.exception(f"Delete post {post_id} failed")
        raise HTTPException(status_code=500, detail=NOT_REMOVED)

    if not post:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return post

# Comments of a post
@router.get("/{post_id}/comments")
def list_post_comments(post_id: str, store: PostStore = Depends(get_store)):
    try:
        post = store.find_by_id(post_id)
        if post:
            return store.find_post_comments(post_id)
    except StoreError:
        logger.exception(f"List comments for post {post_id} failed")
        raise HTTPException(status_code=500, detail=NOT_RETRIEVED)

    raise HTTPException(status_code=404, detail=NOT_FOUND)

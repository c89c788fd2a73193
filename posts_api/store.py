import abc
import copy
import logging
import threading
from decimal import Decimal
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from posts_api.models import Comment, Post, utcnow_iso

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


# Raised when the backing engine fails
class StoreError(Exception):
    pass


def parse_id(raw) -> Optional[int]:
    # Ids are integers; anything else names no record
    if isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


class PostStore(abc.ABC):
    @abc.abstractmethod
    def find_all(self) -> List[Record]:
        ...

    @abc.abstractmethod
    def find_by_id(self, post_id) -> Optional[Record]:
        ...

    @abc.abstractmethod
    def insert(self, record: Record) -> Record:
        ...

    @abc.abstractmethod
    def update(self, post_id, record: Record) -> int:
        ...

    @abc.abstractmethod
    def remove(self, post_id) -> int:
        ...

    @abc.abstractmethod
    def find_post_comments(self, post_id) -> List[Record]:
        ...

    @abc.abstractmethod
    def insert_comment(self, record: Record) -> Record:
        ...


class InMemoryPostStore(PostStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._posts: Dict[int, Record] = {}
        self._comments: Dict[int, Record] = {}
        self._next_post_id = 1
        self._next_comment_id = 1

    def find_all(self) -> List[Record]:
        with self._lock:
            return [copy.deepcopy(post) for post in self._posts.values()]

    def find_by_id(self, post_id) -> Optional[Record]:
        key = parse_id(post_id)
        with self._lock:
            post = self._posts.get(key)
            return copy.deepcopy(post) if post is not None else None

    def insert(self, record: Record) -> Record:
        with self._lock:
            post_id = self._next_post_id
            self._next_post_id += 1
            post = Post(id=post_id, title=record["title"], contents=record["contents"])
            self._posts[post_id] = post.model_dump()
        return {"id": post_id}

    def update(self, post_id, record: Record) -> int:
        key = parse_id(post_id)
        with self._lock:
            post = self._posts.get(key)
            if post is None:
                return 0
            post["title"] = record["title"]
            post["contents"] = record["contents"]
            post["updated_at"] = utcnow_iso()
        return 1

    def remove(self, post_id) -> int:
        key = parse_id(post_id)
        with self._lock:
            return 1 if self._posts.pop(key, None) is not None else 0

    def find_post_comments(self, post_id) -> List[Record]:
        key = parse_id(post_id)
        with self._lock:
            return [
                copy.deepcopy(comment)
                for comment in self._comments.values()
                if comment["post_id"] == key
            ]

    def insert_comment(self, record: Record) -> Record:
        with self._lock:
            comment_id = self._next_comment_id
            self._next_comment_id += 1
            comment = Comment(id=comment_id, text=record["text"], post_id=record["post_id"])
            self._comments[comment_id] = comment.model_dump()
        return {"id": comment_id}


def _plain(item: Record) -> Record:
    # DynamoDB hands numbers back as Decimal
    return {
        key: int(value) if isinstance(value, Decimal) and value == value.to_integral_value() else value
        for key, value in item.items()
    }


# Posts and comments kept in DynamoDB, ids come from atomic counters so sorting
# by id gives insertion order. Reads on the base tables are strongly consistent.
class DynamoPostStore(PostStore):

    def __init__(self, dynamodb, posts_table: str = "Posts",
                 comments_table: str = "Comments", counters_table: str = "Counters"):
        self.posts_table = dynamodb.Table(posts_table)
        self.comments_table = dynamodb.Table(comments_table)
        self.counters_table = dynamodb.Table(counters_table)

    def _next_id(self, name: str) -> int:
        result = self.counters_table.update_item(
            Key={"name": name},
            UpdateExpression="ADD next_id :one",
            ExpressionAttributeValues={":one": 1},
            ReturnValues="UPDATED_NEW"
        )
        return int(result["Attributes"]["next_id"])

    def _scan_all(self, table, **kwargs) -> List[Record]:
        items = []
        while True:
            response = table.scan(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def find_all(self) -> List[Record]:
        try:
            items = self._scan_all(self.posts_table, ConsistentRead=True)
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"Scan posts failed: {e}") from e
        return sorted((_plain(item) for item in items), key=lambda p: p["id"])

    def find_by_id(self, post_id) -> Optional[Record]:
        key = parse_id(post_id)
        if key is None:
            return None
        try:
            response = self.posts_table.get_item(Key={"id": key}, ConsistentRead=True)
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"Get post {key} failed: {e}") from e
        item = response.get("Item")
        return _plain(item) if item else None

    def insert(self, record: Record) -> Record:
        try:
            post_id = self._next_id("posts")
            post = Post(id=post_id, title=record["title"], contents=record["contents"])
            self.posts_table.put_item(Item=post.model_dump())
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"Insert post failed: {e}") from e
        return {"id": post_id}

    def update(self, post_id, record: Record) -> int:
        key = parse_id(post_id)
        if key is None:
            return 0
        try:
            self.posts_table.update_item(
                Key={"id": key},
                UpdateExpression="SET title = :title, contents = :contents, updated_at = :updated_at",
                ConditionExpression="attribute_exists(id)",
                ExpressionAttributeValues={
                    ":title": record["title"],
                    ":contents": record["contents"],
                    ":updated_at": utcnow_iso()
                }
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return 0
            raise StoreError(f"Update post {key} failed: {e}") from e
        except BotoCoreError as e:
            raise StoreError(f"Update post {key} failed: {e}") from e
        return 1

    def remove(self, post_id) -> int:
        key = parse_id(post_id)
        if key is None:
            return 0
        try:
            response = self.posts_table.delete_item(Key={"id": key}, ReturnValues="ALL_OLD")
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"Delete post {key} failed: {e}") from e
        return 1 if response.get("Attributes") else 0

    def find_post_comments(self, post_id) -> List[Record]:
        key = parse_id(post_id)
        if key is None:
            return []
        kwargs = {
            "IndexName": "post_id-index",
            "KeyConditionExpression": Key("post_id").eq(key)
        }
        items = []
        try:
            while True:
                response = self.comments_table.query(**kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"Query comments for post {key} failed: {e}") from e
        return sorted((_plain(item) for item in items), key=lambda c: c["id"])

    def insert_comment(self, record: Record) -> Record:
        try:
            comment_id = self._next_id("comments")
            comment = Comment(id=comment_id, text=record["text"], post_id=record["post_id"])
            self.comments_table.put_item(Item=comment.model_dump())
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"Insert comment failed: {e}") from e
        return {"id": comment_id}

import os
import logging
import boto3
from dotenv import load_dotenv
from fastapi import Request
from botocore.exceptions import ClientError
from posts_api.store import DynamoPostStore, InMemoryPostStore, PostStore

load_dotenv()

logger = logging.getLogger(__name__)

# Store selection, AWS credentials and table names
POST_STORE = os.getenv("POST_STORE", "dynamodb")
AWS_ACCESS_KEY = os.getenv("AWS_ACCESS_KEY_ID")
AWS_SECRET_KEY = os.getenv("AWS_SECRET_ACCESS_KEY")
AWS_REGION = os.getenv("AWS_REGION")
DYNAMODB_ENDPOINT_URL = os.getenv("DYNAMODB_ENDPOINT_URL")
POSTS_TABLE = os.getenv("POSTS_TABLE", "Posts")
COMMENTS_TABLE = os.getenv("COMMENTS_TABLE", "Comments")
COUNTERS_TABLE = os.getenv("COUNTERS_TABLE", "Counters")

TABLE_DEFINITIONS = {
    POSTS_TABLE: {
        "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": "id", "AttributeType": "N"}],
    },
    COMMENTS_TABLE: {
        "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "id", "AttributeType": "N"},
            {"AttributeName": "post_id", "AttributeType": "N"},
        ],
        "GlobalSecondaryIndexes": [
            {
                "IndexName": "post_id-index",
                "KeySchema": [{"AttributeName": "post_id", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"}
            }
        ],
    },
    COUNTERS_TABLE: {
        "KeySchema": [{"AttributeName": "name", "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": "name", "AttributeType": "S"}],
    },
}

# Check AWS credentials and open the DynamoDB resource
def connect_dynamodb():
    if not AWS_ACCESS_KEY or not AWS_SECRET_KEY:
        raise RuntimeError("AWS_ACCESS_KEY_ID or AWS_SECRET_ACCESS_KEY environment variable is not set.")

    return boto3.resource(
        "dynamodb",
        region_name=AWS_REGION,
        endpoint_url=DYNAMODB_ENDPOINT_URL,
        aws_access_key_id=AWS_ACCESS_KEY,
        aws_secret_access_key=AWS_SECRET_KEY
    )

# Create the tables that don't exist yet
def create_tables(dynamodb):
    try:
        existing_tables = [table.name for table in dynamodb.tables.all()]
    except ClientError as e:
        logger.error(f"List tables error: {e}")
        return

    for table_name, definition in TABLE_DEFINITIONS.items():
        if table_name in existing_tables:
            logger.info(f"Table '{table_name}' already exists.")
            continue
        try:
            table = dynamodb.create_table(
                TableName=table_name,
                BillingMode="PAY_PER_REQUEST",
                **definition
            )

            logger.info(f"Table '{table_name}' created.")

            table.wait_until_exists()

            logger.info(f"Table '{table_name}' ready to use.")
        except ClientError as e:
            logger.error(f"Create table error: {e}")

def build_store() -> PostStore:
    if POST_STORE == "memory":
        logger.info("Using in-memory post store")
        return InMemoryPostStore()
    if POST_STORE != "dynamodb":
        raise RuntimeError(f"Unknown POST_STORE '{POST_STORE}', expected 'dynamodb' or 'memory'.")

    dynamodb = connect_dynamodb()
    create_tables(dynamodb)
    return DynamoPostStore(
        dynamodb,
        posts_table=POSTS_TABLE,
        comments_table=COMMENTS_TABLE,
        counters_table=COUNTERS_TABLE
    )

# FastAPI dependency, the store is attached to the app when it is created
def get_store(request: Request) -> PostStore:
    return request.app.state.store

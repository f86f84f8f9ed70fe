"""DynamoDB-backed durable store for multi-instance deployments."""

import json
from typing import Any, Optional

import boto3  # type: ignore
from botocore.exceptions import BotoCoreError, ClientError  # type: ignore

from carenotify.errors import StorageError
from carenotify.logging import get_module_logger

logger = get_module_logger()

PARTITION_KEY = "store_key"
VALUE_ATTRIBUTE = "value_json"


class DynamoDBDurableStore:
    """DurableStore on a single DynamoDB table.

    Table Schema:
        PK: store_key (String)
        Attributes: value_json (String, JSON-encoded value)

    Args:
        table_name: DynamoDB table name
        region: AWS region
        endpoint_url: Optional endpoint override (local DynamoDB)
        client: Optional preconfigured boto3 DynamoDB client
    """

    def __init__(
        self,
        table_name: str,
        region: str = "ca-central-1",
        endpoint_url: Optional[str] = None,
        client: Any = None,
    ):
        self.table_name = table_name
        if client is None:
            client_config = {"region_name": region}
            if endpoint_url:
                client_config["endpoint_url"] = endpoint_url
            client = boto3.client("dynamodb", **client_config)
        self._client = client

        logger.info(
            "initialized_dynamodb_durable_store",
            table_name=table_name,
            region=region,
        )

    def get(self, key: str) -> Optional[Any]:
        try:
            response = self._client.get_item(
                TableName=self.table_name,
                Key={PARTITION_KEY: {"S": key}},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("durable_store_get_error", key=key, error=str(e), exc_info=True)
            raise StorageError("get", key, str(e)) from e

        item = response.get("Item")
        if not item:
            return None

        raw = item.get(VALUE_ATTRIBUTE, {})
        # DynamoDB stores strings in {"S": "value"} format
        value_json = raw["S"] if isinstance(raw, dict) and "S" in raw else raw
        try:
            return json.loads(value_json)
        except (TypeError, ValueError) as e:
            logger.error("durable_store_decode_error", key=key, error=str(e))
            raise StorageError("get", key, f"corrupt value: {e}") from e

    def set(self, key: str, value: Any) -> None:
        try:
            value_json = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error("durable_store_serialization_error", key=key, error=str(e))
            raise StorageError("set", key, f"value is not JSON serializable: {e}") from e

        try:
            self._client.put_item(
                TableName=self.table_name,
                Item={
                    PARTITION_KEY: {"S": key},
                    VALUE_ATTRIBUTE: {"S": value_json},
                },
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("durable_store_set_error", key=key, error=str(e), exc_info=True)
            raise StorageError("set", key, str(e)) from e

    def delete(self, key: str) -> None:
        try:
            self._client.delete_item(
                TableName=self.table_name,
                Key={PARTITION_KEY: {"S": key}},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "durable_store_delete_error", key=key, error=str(e), exc_info=True
            )
            raise StorageError("delete", key, str(e)) from e

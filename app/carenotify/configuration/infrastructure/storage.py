"""Durable store settings."""

from pydantic import Field

from carenotify.configuration.base import InfrastructureSettings


class StorageSettings(InfrastructureSettings):
    """Durable key-value store configuration.

    Environment Variables:
        STORE_BACKEND: 'memory' (development, tests) or 'dynamodb' (default: memory)
        STORE_DYNAMODB_TABLE_NAME: DynamoDB table holding the key-value items
        AWS_REGION: Region of the DynamoDB table (default: ca-central-1)
        AWS_ENDPOINT_URL: Optional endpoint override (local DynamoDB)
    """

    backend: str = Field(
        default="memory",
        alias="STORE_BACKEND",
        description="Store backend: 'memory' or 'dynamodb'",
    )
    dynamodb_table_name: str = Field(
        default="carenotify-store", alias="STORE_DYNAMODB_TABLE_NAME"
    )
    aws_region: str = Field(default="ca-central-1", alias="AWS_REGION")
    endpoint_url: str | None = Field(default=None, alias="AWS_ENDPOINT_URL")

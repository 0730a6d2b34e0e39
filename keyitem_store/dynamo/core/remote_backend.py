"""
Remote backend: signed JSON-over-HTTP calls to a DynamoDB-compatible endpoint.
"""

import json
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlsplit

import httpx

from ..constants import (
    BILLING_PAY_PER_REQUEST,
    ERR_CONDITIONAL_CHECK_FAILED,
    ERR_RESOURCE_IN_USE,
    ERR_TABLE_ALREADY_EXISTS,
    ERR_VALIDATION,
    OP_CREATE_TABLE,
    OP_DELETE_ITEM,
    OP_DESCRIBE_TABLE,
    OP_DESCRIBE_TTL,
    OP_GET_ITEM,
    OP_PUT_ITEM,
    OP_QUERY,
    OP_UPDATE_ITEM,
    OP_UPDATE_TABLE,
    OP_UPDATE_TTL,
    TARGET_PREFIX,
)
from ..exceptions import (
    BackendRequestFailedError,
    ConditionalCheckFailedError,
    ValidationFailedError,
)
from ..logging_config import get_logger
from ..models import QueryPage, SecondaryIndex, TableDefinition
from .backend import StoreBackend
from .codec import marshal_item, unmarshal_item
from .signer import Credentials, sign_request

logger = get_logger(__name__)


class RemoteBackend(StoreBackend):
    """Backend that talks to the real service (or DynamoDB Local) over HTTP."""

    def __init__(
        self,
        endpoint: str,
        region: str,
        credentials: Credentials,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize remote backend.

        Args:
            endpoint: Service URL, e.g. https://dynamodb.us-east-1.amazonaws.com
            region: Signing region
            credentials: Key pair used to sign every request
            client: Optional httpx client (owned by the caller when given)
            clock: Optional source of the signing time
        """
        parts = urlsplit(endpoint)
        self.endpoint = endpoint
        self.region = region
        self.host = parts.netloc
        self.path = parts.path or "/"
        self._credentials = credentials
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ---------- Transport ----------
    async def send(self, operation: str, body: dict[str, Any]) -> dict[str, Any]:
        """
        Sign and send one operation.

        Args:
            operation: Operation name, e.g. PutItem
            body: Request object

        Returns:
            Decoded JSON response ({} when the body is empty)

        Raises:
            BackendRequestFailedError: On a non-2xx response
        """
        target = f"{TARGET_PREFIX}.{operation}"
        payload = json.dumps(body, separators=(",", ":"))
        headers = sign_request(
            self._credentials,
            self.region,
            self.host,
            target,
            payload,
            timestamp=self._clock(),
            path=self.path,
        )

        logger.debug(f"{operation} -> {self.endpoint} table={body.get('TableName')}")
        response = await self._client.post(
            self.endpoint, content=payload.encode("utf-8"), headers=headers
        )

        if not response.is_success:
            text = response.text
            code = _error_code(text)
            logger.warning(f"{operation} failed: status={response.status_code} code={code}")
            if code == ERR_CONDITIONAL_CHECK_FAILED:
                raise ConditionalCheckFailedError(response.status_code, text, code)
            if code == ERR_VALIDATION:
                raise ValidationFailedError(response.status_code, text, code)
            raise BackendRequestFailedError(response.status_code, text, code)

        if not response.content:
            return {}
        return response.json()  # type: ignore[no-any-return]

    # ---------- Items ----------
    async def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition: str | None = None,
        names: dict[str, str] | None = None,
        values: dict[str, Any] | None = None,
    ) -> None:
        body: dict[str, Any] = {"TableName": table, "Item": marshal_item(item)}
        _add_expression_fields(body, condition, names, values)
        await self.send(OP_PUT_ITEM, body)

    async def get_item(
        self, table: str, key: dict[str, Any], consistent_read: bool = False
    ) -> dict[str, Any] | None:
        body: dict[str, Any] = {"TableName": table, "Key": marshal_item(key)}
        if consistent_read:
            body["ConsistentRead"] = True
        result = await self.send(OP_GET_ITEM, body)
        item = result.get("Item")
        return unmarshal_item(item) if item else None

    async def update_item(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        values: dict[str, Any],
        condition: str | None = None,
        names: dict[str, str] | None = None,
    ) -> dict[str, Any] | None:
        body: dict[str, Any] = {
            "TableName": table,
            "Key": marshal_item(key),
            "UpdateExpression": update_expression,
            "ReturnValues": "ALL_NEW",
        }
        _add_expression_fields(body, condition, names, values)
        result = await self.send(OP_UPDATE_ITEM, body)
        attributes = result.get("Attributes")
        return unmarshal_item(attributes) if attributes else None

    async def delete_item(self, table: str, key: dict[str, Any]) -> None:
        await self.send(OP_DELETE_ITEM, {"TableName": table, "Key": marshal_item(key)})

    async def query(
        self,
        table: str,
        key_condition: str,
        values: dict[str, Any],
        index_name: str | None = None,
        filter_expression: str | None = None,
        names: dict[str, str] | None = None,
        cursor: dict[str, Any] | None = None,
        scan_forward: bool | None = None,
        limit: int | None = None,
    ) -> QueryPage:
        body: dict[str, Any] = {"TableName": table, "KeyConditionExpression": key_condition}
        if index_name:
            body["IndexName"] = index_name
        if filter_expression:
            body["FilterExpression"] = filter_expression
        _add_expression_fields(body, None, names, values)
        if cursor:
            body["ExclusiveStartKey"] = marshal_item(cursor)
        if scan_forward is not None:
            body["ScanIndexForward"] = scan_forward
        if limit is not None:
            body["Limit"] = limit

        result = await self.send(OP_QUERY, body)
        items = [unmarshal_item(item) for item in result.get("Items") or []]
        last_key = result.get("LastEvaluatedKey")
        return QueryPage(
            items=items,
            count=result.get("Count", len(items)),
            cursor=unmarshal_item(last_key) if last_key else None,
        )

    # ---------- Control plane ----------
    async def describe_table(self, table: str) -> dict[str, Any] | None:
        try:
            result = await self.send(OP_DESCRIBE_TABLE, {"TableName": table})
        except BackendRequestFailedError as e:
            if e.is_resource_not_found:
                return None
            raise
        return result.get("Table") or {}

    async def create_table(self, definition: TableDefinition) -> None:
        body: dict[str, Any] = {
            "TableName": definition.name,
            "AttributeDefinitions": definition.attribute_definitions(),
            "KeySchema": definition.key_schema(),
            "BillingMode": BILLING_PAY_PER_REQUEST,
        }
        if definition.indexes:
            body["GlobalSecondaryIndexes"] = [index.to_wire() for index in definition.indexes]
        try:
            await self.send(OP_CREATE_TABLE, body)
        except BackendRequestFailedError as e:
            # Another process won the race; the caller polls for ACTIVE either way.
            if e.code in (ERR_RESOURCE_IN_USE, ERR_TABLE_ALREADY_EXISTS):
                logger.info(f"Table '{definition.name}' is already being created")
                return
            raise

    async def add_index(self, definition: TableDefinition, index: SecondaryIndex) -> None:
        body = {
            "TableName": definition.name,
            "AttributeDefinitions": definition.index_attribute_definitions(index),
            "GlobalSecondaryIndexUpdates": [{"Create": index.to_wire()}],
        }
        try:
            await self.send(OP_UPDATE_TABLE, body)
        except BackendRequestFailedError as e:
            if e.is_resource_in_use:
                logger.info(f"Index '{index.name}' on '{definition.name}' is already being added")
                return
            raise

    async def describe_time_to_live(self, table: str) -> dict[str, Any] | None:
        try:
            result = await self.send(OP_DESCRIBE_TTL, {"TableName": table})
        except BackendRequestFailedError as e:
            if e.is_resource_not_found:
                return None
            raise
        return result.get("TimeToLiveDescription") or {}

    async def update_time_to_live(self, table: str, attribute: str) -> None:
        await self.send(
            OP_UPDATE_TTL,
            {
                "TableName": table,
                "TimeToLiveSpecification": {"AttributeName": attribute, "Enabled": True},
            },
        )


def _add_expression_fields(
    body: dict[str, Any],
    condition: str | None,
    names: dict[str, str] | None,
    values: dict[str, Any] | None,
) -> None:
    if condition:
        body["ConditionExpression"] = condition
    if values:
        body["ExpressionAttributeValues"] = marshal_item(values)
    if names:
        body["ExpressionAttributeNames"] = names


def _error_code(text: str) -> str | None:
    """Extract the short error code from a JSON error body ("...#Code" -> "Code")."""
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    if not isinstance(parsed, dict):
        return None
    raw = parsed.get("__type") or parsed.get("__Type") or parsed.get("code") or parsed.get("Code")
    if not isinstance(raw, str) or not raw:
        return None
    return raw.split("#")[-1]

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import anyio
import httpx
import pytest

from keyitem_store.dynamo.core.remote_backend import RemoteBackend
from keyitem_store.dynamo.core.signer import Credentials, sign_request
from keyitem_store.dynamo.exceptions import (
    BackendRequestFailedError,
    ConditionalCheckFailedError,
    ValidationFailedError,
)
from tests.conftest import ITEMS_TABLE

ENDPOINT = "http://localhost:8000"
MOMENT = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
CREDENTIALS = Credentials("AKIDEXAMPLE", "secret")

Handler = Callable[[httpx.Request], httpx.Response]


def _error(status: int, code: str, message: str = "failed") -> httpx.Response:
    return httpx.Response(
        status, json={"__type": f"com.amazonaws.dynamodb.v20120810#{code}", "message": message}
    )


class Recorder:
    """Records requests and answers them from a queue of responses."""

    def __init__(self, *responses: httpx.Response | Handler):
        self.requests: list[httpx.Request] = []
        self._responses = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self._responses.pop(0) if self._responses else httpx.Response(200, json={})
        if callable(response):
            return response(request)
        return response

    def target(self, index: int = -1) -> str:
        return self.requests[index].headers["x-amz-target"]

    def body(self, index: int = -1) -> dict[str, Any]:
        return json.loads(self.requests[index].content)


def run_remote(recorder: Recorder, operation: Callable[[RemoteBackend], Any]) -> Any:
    async def inner() -> Any:
        transport = httpx.MockTransport(recorder)
        async with httpx.AsyncClient(transport=transport) as client:
            backend = RemoteBackend(
                ENDPOINT, "us-east-1", CREDENTIALS, client=client, clock=lambda: MOMENT
            )
            return await operation(backend)

    return anyio.run(inner)


def test_put_item_request_shape() -> None:
    recorder = Recorder()

    async def put(backend: RemoteBackend) -> None:
        await backend.put_item(
            "questions",
            {"pk": "ORG#1", "sk": "QSET#42", "count": 3, "draft": True},
            condition="attribute_not_exists(pk)",
        )

    run_remote(recorder, put)

    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.url.host == "localhost"
    assert request.url.port == 8000
    assert request.headers["x-amz-target"] == "DynamoDB_20120810.PutItem"
    assert request.headers["content-type"] == "application/x-amz-json-1.0"
    assert request.headers["x-amz-date"] == "20240102T030405Z"
    assert request.headers["authorization"].startswith(
        "AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/20240102/us-east-1/dynamodb/aws4_request"
    )
    assert recorder.body() == {
        "TableName": "questions",
        "Item": {
            "pk": {"S": "ORG#1"},
            "sk": {"S": "QSET#42"},
            "count": {"N": "3"},
            "draft": {"BOOL": True},
        },
        "ConditionExpression": "attribute_not_exists(pk)",
    }


def test_signature_covers_the_exact_body() -> None:
    recorder = Recorder()

    async def delete(backend: RemoteBackend) -> None:
        await backend.delete_item("questions", {"pk": "ORG#1", "sk": "META"})

    run_remote(recorder, delete)

    request = recorder.requests[0]
    expected = sign_request(
        CREDENTIALS,
        "us-east-1",
        "localhost:8000",
        "DynamoDB_20120810.DeleteItem",
        request.content.decode("utf-8"),
        MOMENT,
    )
    assert request.headers["authorization"] == expected["authorization"]


def test_get_item() -> None:
    recorder = Recorder(
        httpx.Response(200, json={"Item": {"pk": {"S": "ORG#1"}, "n": {"N": "1.5"}}}),
        httpx.Response(200, json={}),
    )

    async def get(backend: RemoteBackend) -> tuple[Any, Any]:
        found = await backend.get_item("t-1", {"pk": "ORG#1"}, consistent_read=True)
        missing = await backend.get_item("t-1", {"pk": "ORG#2"})
        return found, missing

    found, missing = run_remote(recorder, get)

    assert found == {"pk": "ORG#1", "n": 1.5}
    assert missing is None
    assert recorder.body(0)["ConsistentRead"] is True
    assert "ConsistentRead" not in recorder.body(1)


def test_update_item_returns_new_attributes() -> None:
    recorder = Recorder(
        httpx.Response(200, json={"Attributes": {"pk": {"S": "A"}, "title": {"S": "New"}}})
    )

    async def update(backend: RemoteBackend) -> Any:
        return await backend.set_attribute("t-1", {"pk": "A"}, "title", "New")

    assert run_remote(recorder, update) == {"pk": "A", "title": "New"}
    assert recorder.target() == "DynamoDB_20120810.UpdateItem"
    assert recorder.body() == {
        "TableName": "t-1",
        "Key": {"pk": {"S": "A"}},
        "UpdateExpression": "SET #attr = :value",
        "ReturnValues": "ALL_NEW",
        "ExpressionAttributeValues": {":value": {"S": "New"}},
        "ExpressionAttributeNames": {"#attr": "title"},
    }


def test_query_request_and_cursor() -> None:
    recorder = Recorder(
        httpx.Response(
            200,
            json={
                "Items": [{"pk": {"S": "A"}, "sk": {"S": "1"}}],
                "Count": 1,
                "LastEvaluatedKey": {"pk": {"S": "A"}, "sk": {"S": "1"}},
            },
        )
    )

    async def query(backend: RemoteBackend) -> Any:
        return await backend.query(
            "t-1",
            "pk = :pk AND begins_with(sk, :p)",
            {":pk": "A", ":p": "QSET#"},
            index_name="byThing",
            filter_expression="attribute_not_exists(deletedAt)",
            cursor={"pk": "A", "sk": "0"},
            scan_forward=False,
            limit=10,
        )

    page = run_remote(recorder, query)

    assert page.items == [{"pk": "A", "sk": "1"}]
    assert page.count == 1
    assert page.cursor == {"pk": "A", "sk": "1"}
    assert recorder.body() == {
        "TableName": "t-1",
        "KeyConditionExpression": "pk = :pk AND begins_with(sk, :p)",
        "IndexName": "byThing",
        "FilterExpression": "attribute_not_exists(deletedAt)",
        "ExpressionAttributeValues": {":pk": {"S": "A"}, ":p": {"S": "QSET#"}},
        "ExclusiveStartKey": {"pk": {"S": "A"}, "sk": {"S": "0"}},
        "ScanIndexForward": False,
        "Limit": 10,
    }


def test_query_all_follows_cursor() -> None:
    recorder = Recorder(
        httpx.Response(
            200,
            json={
                "Items": [{"pk": {"S": "A"}, "sk": {"S": "1"}}],
                "Count": 1,
                "LastEvaluatedKey": {"pk": {"S": "A"}, "sk": {"S": "1"}},
            },
        ),
        httpx.Response(200, json={"Items": [{"pk": {"S": "A"}, "sk": {"S": "2"}}], "Count": 1}),
    )

    async def query_all(backend: RemoteBackend) -> Any:
        return await backend.query_all("t-1", "pk = :pk", {":pk": "A"})

    assert run_remote(recorder, query_all) == [{"pk": "A", "sk": "1"}, {"pk": "A", "sk": "2"}]
    assert "ExclusiveStartKey" not in recorder.body(0)
    assert recorder.body(1)["ExclusiveStartKey"] == {"pk": {"S": "A"}, "sk": {"S": "1"}}


@pytest.mark.parametrize(
    ("response", "error_type"),
    [
        (_error(400, "ConditionalCheckFailedException"), ConditionalCheckFailedError),
        (_error(400, "ValidationException"), ValidationFailedError),
        (_error(400, "ResourceNotFoundException"), BackendRequestFailedError),
        (httpx.Response(500, text="<html>oops</html>"), BackendRequestFailedError),
    ],
)
def test_error_mapping(response: httpx.Response, error_type: type[Exception]) -> None:
    recorder = Recorder(response)

    async def put(backend: RemoteBackend) -> None:
        await backend.put_item("t-1", {"pk": "A"})

    with pytest.raises(error_type) as excinfo:
        run_remote(recorder, put)

    error = excinfo.value
    assert isinstance(error, BackendRequestFailedError)
    assert error.status == response.status_code
    assert error.body == response.text


def test_error_code_is_short_name() -> None:
    recorder = Recorder(_error(400, "ResourceNotFoundException"), httpx.Response(500, text="x"))

    async def put_twice(backend: RemoteBackend) -> list[BackendRequestFailedError]:
        errors = []
        for _ in range(2):
            try:
                await backend.put_item("t-1", {"pk": "A"})
            except BackendRequestFailedError as e:
                errors.append(e)
        return errors

    not_found, server_error = run_remote(recorder, put_twice)

    assert not_found.code == "ResourceNotFoundException"
    assert not_found.is_resource_not_found
    assert server_error.code is None
    assert server_error.status == 500


def test_describe_returns_none_for_missing_table() -> None:
    recorder = Recorder(
        _error(400, "ResourceNotFoundException"), _error(400, "ResourceNotFoundException")
    )

    async def describe(backend: RemoteBackend) -> tuple[Any, Any]:
        return (
            await backend.describe_table("missing"),
            await backend.describe_time_to_live("missing"),
        )

    assert run_remote(recorder, describe) == (None, None)
    assert recorder.target(0) == "DynamoDB_20120810.DescribeTable"
    assert recorder.target(1) == "DynamoDB_20120810.DescribeTimeToLive"


def test_describe_propagates_other_errors() -> None:
    recorder = Recorder(_error(400, "AccessDeniedException"))

    async def describe(backend: RemoteBackend) -> Any:
        return await backend.describe_table("t-1")

    with pytest.raises(BackendRequestFailedError) as excinfo:
        run_remote(recorder, describe)
    assert excinfo.value.code == "AccessDeniedException"


def test_describe_table_and_ttl() -> None:
    recorder = Recorder(
        httpx.Response(200, json={"Table": {"TableName": "t-1", "TableStatus": "ACTIVE"}}),
        httpx.Response(
            200,
            json={
                "TimeToLiveDescription": {
                    "TimeToLiveStatus": "ENABLED",
                    "AttributeName": "expiresAt",
                }
            },
        ),
    )

    async def describe(backend: RemoteBackend) -> tuple[Any, Any]:
        return await backend.describe_table("t-1"), await backend.describe_time_to_live("t-1")

    table, ttl = run_remote(recorder, describe)

    assert table == {"TableName": "t-1", "TableStatus": "ACTIVE"}
    assert ttl == {"TimeToLiveStatus": "ENABLED", "AttributeName": "expiresAt"}


def test_create_table_request_and_race() -> None:
    recorder = Recorder(
        httpx.Response(200, json={"TableDescription": {}}),
        _error(400, "ResourceInUseException"),
        _error(400, "TableAlreadyExistsException"),
    )

    async def create(backend: RemoteBackend) -> None:
        for _ in range(3):
            await backend.create_table(ITEMS_TABLE)

    run_remote(recorder, create)

    assert recorder.target(0) == "DynamoDB_20120810.CreateTable"
    assert recorder.body(0) == {
        "TableName": "test-items",
        "AttributeDefinitions": [
            {"AttributeName": "pk", "AttributeType": "S"},
            {"AttributeName": "sk", "AttributeType": "S"},
            {"AttributeName": "snippetIndexPk", "AttributeType": "S"},
            {"AttributeName": "updatedAt", "AttributeType": "S"},
        ],
        "KeySchema": [
            {"AttributeName": "pk", "KeyType": "HASH"},
            {"AttributeName": "sk", "KeyType": "RANGE"},
        ],
        "BillingMode": "PAY_PER_REQUEST",
        "GlobalSecondaryIndexes": [
            {
                "IndexName": "bySnippet",
                "KeySchema": [
                    {"AttributeName": "snippetIndexPk", "KeyType": "HASH"},
                    {"AttributeName": "updatedAt", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            }
        ],
    }


def test_create_table_propagates_other_errors() -> None:
    recorder = Recorder(_error(400, "LimitExceededException"))

    async def create(backend: RemoteBackend) -> None:
        await backend.create_table(ITEMS_TABLE)

    with pytest.raises(BackendRequestFailedError):
        run_remote(recorder, create)


def test_add_index_and_enable_ttl() -> None:
    recorder = Recorder(httpx.Response(200, json={}), httpx.Response(200, json={}))

    async def change(backend: RemoteBackend) -> None:
        await backend.add_index(ITEMS_TABLE, ITEMS_TABLE.indexes[0])
        await backend.update_time_to_live("test-cache", "expiresAt")

    run_remote(recorder, change)

    assert recorder.target(0) == "DynamoDB_20120810.UpdateTable"
    assert recorder.body(0) == {
        "TableName": "test-items",
        "AttributeDefinitions": [
            {"AttributeName": "snippetIndexPk", "AttributeType": "S"},
            {"AttributeName": "updatedAt", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexUpdates": [{"Create": ITEMS_TABLE.indexes[0].to_wire()}],
    }
    assert recorder.target(1) == "DynamoDB_20120810.UpdateTimeToLive"
    assert recorder.body(1) == {
        "TableName": "test-cache",
        "TimeToLiveSpecification": {"AttributeName": "expiresAt", "Enabled": True},
    }


def test_empty_success_body() -> None:
    recorder = Recorder(httpx.Response(200, content=b""))

    async def send(backend: RemoteBackend) -> Any:
        return await backend.send("DeleteItem", {"TableName": "t-1", "Key": {}})

    assert run_remote(recorder, send) == {}

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import Settings

logger = logging.getLogger(__name__)


class DynamoStore:
    """
    DynamoDB access for users, transactions, alerts and goals.

    Every table except users is keyed by (user_id, <item>_id), so reads are
    always partitioned by the owning user.
    """

    def __init__(self, settings: Settings, resource=None) -> None:
        self._dynamodb = resource or boto3.resource("dynamodb", region_name=settings.DYNAMO_REGION)
        self.users_table = self._dynamodb.Table(settings.DYNAMO_TABLE_USERS)
        self.transactions_table = self._dynamodb.Table(settings.DYNAMO_TABLE_TRANSACTIONS)
        self.alerts_table = self._dynamodb.Table(settings.DYNAMO_TABLE_ALERTS)
        self.goals_table = self._dynamodb.Table(settings.DYNAMO_TABLE_GOALS)

    # Users

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Query the Users table by email (assumes a GSI exists on email)."""
        try:
            response = self.users_table.query(
                IndexName="email-index",
                KeyConditionExpression=Key("email").eq(email),
            )
            return _from_dynamo(response["Items"][0]) if response["Items"] else None
        except ClientError as e:
            logger.error(f"get_user_by_email failed: {e.response['Error']['Message']}")
            return None

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.users_table.get_item(Key={"user_id": user_id})
            item = response.get("Item")
            return _from_dynamo(item) if item else None
        except ClientError as e:
            logger.error(f"get_user failed: {e.response['Error']['Message']}")
            return None

    def put_user(self, user_item: dict) -> bool:
        try:
            self.users_table.put_item(Item=_convert_for_dynamo(user_item))
            return True
        except ClientError as e:
            logger.error(f"put_user failed: {e.response['Error']['Message']}")
            return False

    def update_user(self, user_id: str, updates: dict) -> Optional[Dict[str, Any]]:
        """Apply top-level attribute updates to a user. Returns the updated item or None."""
        return _update_item(self.users_table, {"user_id": user_id}, updates)

    def list_alert_enabled_user_ids(self) -> List[str]:
        """Users whose alerts_settings.enabled is not explicitly false."""
        enabled = Attr("alerts_settings.enabled").not_exists() | Attr("alerts_settings.enabled").ne(False)
        try:
            items = _paginate(
                self.users_table.scan,
                FilterExpression=enabled,
                ProjectionExpression="user_id",
            )
            return [item["user_id"] for item in items]
        except ClientError as e:
            logger.error(f"list_alert_enabled_user_ids failed: {e.response['Error']['Message']}")
            return []

    # Transactions

    def put_transaction(self, item: dict) -> bool:
        try:
            self.transactions_table.put_item(Item=_convert_for_dynamo(item))
            return True
        except ClientError as e:
            logger.error(f"put_transaction failed: {e.response['Error']['Message']}")
            return False

    def get_transaction(self, user_id: str, transaction_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.transactions_table.get_item(
                Key={"user_id": user_id, "transaction_id": transaction_id}
            )
            item = response.get("Item")
            return _from_dynamo(item) if item else None
        except ClientError as e:
            logger.error(f"get_transaction failed: {e.response['Error']['Message']}")
            return None

    def list_transactions(self, user_id: str, kind: Optional[str] = None) -> List[Dict[str, Any]]:
        """All transactions of a user, optionally restricted to one kind."""
        query_args = {"KeyConditionExpression": Key("user_id").eq(user_id)}
        if kind:
            query_args["FilterExpression"] = Attr("kind").eq(kind)
        try:
            return [_from_dynamo(item) for item in _paginate(self.transactions_table.query, **query_args)]
        except ClientError as e:
            logger.error(f"list_transactions failed: {e.response['Error']['Message']}")
            return []

    def update_transaction(self, user_id: str, transaction_id: str, updates: dict) -> Optional[Dict[str, Any]]:
        return _update_item(
            self.transactions_table,
            {"user_id": user_id, "transaction_id": transaction_id},
            updates,
        )

    def delete_transaction(self, user_id: str, transaction_id: str) -> bool:
        return _delete_item(self.transactions_table, {"user_id": user_id, "transaction_id": transaction_id})

    # Alerts

    def put_alert(self, item: dict) -> bool:
        try:
            self.alerts_table.put_item(Item=_convert_for_dynamo(item))
            return True
        except ClientError as e:
            logger.error(f"put_alert failed: {e.response['Error']['Message']}")
            return False

    def list_alerts(self, user_id: str) -> List[Dict[str, Any]]:
        try:
            items = _paginate(self.alerts_table.query, KeyConditionExpression=Key("user_id").eq(user_id))
            return [_from_dynamo(item) for item in items]
        except ClientError as e:
            logger.error(f"list_alerts failed: {e.response['Error']['Message']}")
            return []

    def mark_alert_read(self, user_id: str, alert_id: str) -> Optional[Dict[str, Any]]:
        return _update_item(self.alerts_table, {"user_id": user_id, "alert_id": alert_id}, {"read": True})

    def delete_alert(self, user_id: str, alert_id: str) -> bool:
        return _delete_item(self.alerts_table, {"user_id": user_id, "alert_id": alert_id})

    # Goals

    def put_goal(self, item: dict) -> bool:
        try:
            self.goals_table.put_item(Item=_convert_for_dynamo(item))
            return True
        except ClientError as e:
            logger.error(f"put_goal failed: {e.response['Error']['Message']}")
            return False

    def list_goals(self, user_id: str) -> List[Dict[str, Any]]:
        try:
            items = _paginate(self.goals_table.query, KeyConditionExpression=Key("user_id").eq(user_id))
            return [_from_dynamo(item) for item in items]
        except ClientError as e:
            logger.error(f"list_goals failed: {e.response['Error']['Message']}")
            return []

    def update_goal(self, user_id: str, goal_id: str, updates: dict) -> Optional[Dict[str, Any]]:
        return _update_item(self.goals_table, {"user_id": user_id, "goal_id": goal_id}, updates)

    def delete_goal(self, user_id: str, goal_id: str) -> bool:
        return _delete_item(self.goals_table, {"user_id": user_id, "goal_id": goal_id})

    def ping(self) -> Dict[str, str]:
        """Per-table reachability, used by the health endpoint."""
        tables = {
            "users": self.users_table,
            "transactions": self.transactions_table,
            "alerts": self.alerts_table,
            "goals": self.goals_table,
        }
        status = {}
        for name, table in tables.items():
            try:
                table.scan(Limit=1)
                status[name] = "accessible"
            except (BotoCoreError, ClientError) as e:
                status[name] = f"error: {e}"
        return status


def _paginate(operation, **kwargs) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    while True:
        response = operation(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


def _update_item(table, key: dict, updates: dict) -> Optional[Dict[str, Any]]:
    """
    Apply partial updates to an existing item. Returns the updated item or
    None when nothing matched the key.
    """
    if not updates:
        return None

    update_expression_parts = []
    expression_attribute_values = {}
    expression_attribute_names = {}

    for idx, (field, value) in enumerate(updates.items()):
        placeholder = f"#f{idx}"
        value_placeholder = f":v{idx}"
        update_expression_parts.append(f"{placeholder} = {value_placeholder}")
        expression_attribute_names[placeholder] = field
        expression_attribute_values[value_placeholder] = value

    # update_item upserts by default; refuse to create rows for unknown keys
    conditions = []
    for idx, name in enumerate(key):
        expression_attribute_names[f"#k{idx}"] = name
        conditions.append(f"attribute_exists(#k{idx})")

    try:
        response = table.update_item(
            Key=key,
            UpdateExpression="SET " + ", ".join(update_expression_parts),
            ConditionExpression=" AND ".join(conditions),
            ExpressionAttributeNames=expression_attribute_names,
            ExpressionAttributeValues=_convert_for_dynamo(expression_attribute_values),
            ReturnValues="ALL_NEW",
        )
        attributes = response.get("Attributes")
        return _from_dynamo(attributes) if attributes else None
    except ClientError as e:
        if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
            return None
        logger.error(f"update_item on {table.name} failed: {e.response['Error']['Message']}")
        return None


def _delete_item(table, key: dict) -> bool:
    try:
        response = table.delete_item(Key=key, ReturnValues="ALL_OLD")
        return "Attributes" in response
    except ClientError as e:
        logger.error(f"delete_item on {table.name} failed: {e.response['Error']['Message']}")
        return False


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj

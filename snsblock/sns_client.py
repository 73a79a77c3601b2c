"""
Amazon SNS client used by the reconciler.

``SnsTopicClient`` wraps a boto3 SNS client and narrows it to the three calls
the subscription lifecycle needs. Every failure, whether a botocore
exception or a non-200 response, is raised as ``TopicProviderError`` so the
reconciler has exactly one error type to translate into a block status.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import boto3
from botocore.config import Config as BotocoreConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import AppConfig, BlockConfig
from .constants import PENDING_CONFIRMATION_ARN
from .errors import TopicProviderError

logger = logging.getLogger(__name__)


@dataclass
class SubscriptionPage:
    """One page of ListSubscriptionsByTopic."""

    subscription_arns: list[str] = field(default_factory=list)
    next_token: str | None = None


class TopicClient(Protocol):
    def subscribe(
        self,
        topic_arn: str,
        endpoint_url: str,
        protocol: str,
        attributes: dict[str, str] | None = None,
    ) -> str: ...

    def unsubscribe(self, subscription_arn: str) -> None: ...

    def list_subscriptions(
        self, topic_arn: str, next_token: str | None = None
    ) -> SubscriptionPage: ...


def _status_code(response: dict[str, Any]) -> int | None:
    return response.get("ResponseMetadata", {}).get("HTTPStatusCode")


class SnsTopicClient:
    """boto3-backed TopicClient.

    Args:
        client: A boto3 SNS client. Use ``from_config()`` to build one from
            app and block configuration.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_config(cls, app_config: AppConfig, block_config: BlockConfig) -> "SnsTopicClient":
        client = boto3.client(
            "sns",
            region_name=block_config.region,
            aws_access_key_id=app_config.access_key_id,
            aws_secret_access_key=app_config.secret_access_key,
            aws_session_token=app_config.session_token,
            endpoint_url=app_config.endpoint,
            # No hidden retries, the reconciler owns retry policy
            config=BotocoreConfig(retries={"max_attempts": 1, "mode": "standard"}),
        )
        return cls(client)

    def _call(self, operation: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = getattr(self._client, operation)(**kwargs)
        except ClientError as e:
            error = e.response.get("Error", {})
            status = _status_code(e.response)
            raise TopicProviderError(
                f"Couldn't issue SNS {operation} command: "
                f"{error.get('Code', 'Unknown')}: {error.get('Message', str(e))}",
                status_code=status,
            ) from e
        except BotoCoreError as e:
            raise TopicProviderError(f"Couldn't issue SNS {operation} command: {e}") from e

        status = _status_code(response)
        if status is not None and status != 200:
            raise TopicProviderError(
                f"Couldn't issue SNS {operation} command, statusCode: {status}",
                status_code=status,
            )
        return response

    def subscribe(
        self,
        topic_arn: str,
        endpoint_url: str,
        protocol: str,
        attributes: dict[str, str] | None = None,
    ) -> str:
        params: dict[str, Any] = {
            "TopicArn": topic_arn,
            "Protocol": protocol,
            "Endpoint": endpoint_url,
            "ReturnSubscriptionArn": True,
        }
        if attributes:
            params["Attributes"] = dict(attributes)
        response = self._call("subscribe", **params)
        subscription_arn = response.get("SubscriptionArn")
        if not subscription_arn:
            raise TopicProviderError("SNS Subscribe response did not include a SubscriptionArn")
        logger.info(f"Subscribed {endpoint_url} to {topic_arn} as {subscription_arn}")
        return subscription_arn

    def unsubscribe(self, subscription_arn: str) -> None:
        self._call("unsubscribe", SubscriptionArn=subscription_arn)
        logger.info(f"Unsubscribed {subscription_arn}")

    def list_subscriptions(
        self, topic_arn: str, next_token: str | None = None
    ) -> SubscriptionPage:
        params: dict[str, Any] = {"TopicArn": topic_arn}
        if next_token:
            params["NextToken"] = next_token
        response = self._call("list_subscriptions_by_topic", **params)
        return SubscriptionPage(
            subscription_arns=[
                sub["SubscriptionArn"]
                for sub in response.get("Subscriptions", [])
                if sub.get("SubscriptionArn") not in (None, "", PENDING_CONFIRMATION_ARN)
            ],
            next_token=response.get("NextToken") or None,
        )

# lambdas/stream_processor/publisher.py
from typing import Mapping, Optional

from .models import Category, FanoutMessage
from .structured_log import StructuredLogger


class TopicPublisher:
    """
    Sends fan-out messages to the SNS topic of their category.

    The category and the stream eventName travel as message attributes so
    subscription filter policies can route without parsing the body.
    Errors from the SNS client are not caught here: retries are the
    client's job (botocore retry config) and failures are collected by the
    batch coordinator.
    """

    def __init__(self, sns_client, topics: Mapping[Category, Optional[str]], log: StructuredLogger):
        self.sns_client = sns_client
        self.topics = dict(topics)
        self.log = log

    def topic_for(self, category: Category) -> Optional[str]:
        return self.topics.get(category) or None

    def send(self, topic_arn: str, message: FanoutMessage, category: Category) -> str:
        """
        Publishes one message.

        Returns:
            The SNS MessageId.

        Raises:
            ClientError / BotoCoreError: If the publish call fails.
        """
        attributes = {
            "eventType": {"DataType": "String", "StringValue": category.value},
        }
        # SNS rejects empty string attribute values.
        if message.event_name:
            attributes["eventName"] = {"DataType": "String", "StringValue": message.event_name}

        response = self.sns_client.publish(
            TopicArn=topic_arn,
            Message=message.to_json(),
            MessageAttributes=attributes,
        )
        return response.get("MessageId", "")

    def publish(self, message: FanoutMessage, category: Category) -> Optional[str]:
        """
        Publishes a message to its category topic.
        Returns None without sending when no topic is configured for the category.
        """
        topic_arn = self.topic_for(category)
        if not topic_arn:
            self.log.warn("no-topic-configured", eventType=category.value)
            return None

        message_id = self.send(topic_arn, message, category)
        self.log.info("published", eventName=message.event_name, eventType=category.value, messageId=message_id)
        return message_id

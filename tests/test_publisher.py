# tests/test_publisher.py
import json
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.stub import ANY, Stubber

from lambdas.stream_processor.models import Category, FanoutMessage
from lambdas.stream_processor.publisher import TopicPublisher

PAYMENT_TOPIC = "arn:aws:sns:us-east-1:123456789012:payment-events"
LICENSE_TOPIC = "arn:aws:sns:us-east-1:123456789012:license-events"


@pytest.fixture
def sns_client() -> MagicMock:
    client = MagicMock()
    client.publish.return_value = {"MessageId": "msg-1"}
    return client


@pytest.fixture
def publisher(sns_client, log) -> TopicPublisher:
    topics = {Category.PAYMENT: PAYMENT_TOPIC, Category.CUSTOMER: None, Category.LICENSE: LICENSE_TOPIC}
    return TopicPublisher(sns_client, topics, log)


def test_publish_sends_body_and_filter_attributes(publisher, sns_client, change_record):
    message = FanoutMessage.from_change_record(change_record("subscription_created"), environment="prod")

    message_id = publisher.publish(message, Category.PAYMENT)

    assert message_id == "msg-1"
    sns_client.publish.assert_called_once()
    kwargs = sns_client.publish.call_args.kwargs
    assert kwargs["TopicArn"] == PAYMENT_TOPIC
    assert kwargs["MessageAttributes"] == {
        "eventType": {"DataType": "String", "StringValue": "PAYMENT"},
        "eventName": {"DataType": "String", "StringValue": "INSERT"},
    }
    body = json.loads(kwargs["Message"])
    assert body["keys"]["SK"] == {"S": "SUB#123"}
    assert body["environment"] == "prod"


def test_publish_skips_category_without_topic(publisher, sns_client, change_record, capsys):
    message = FanoutMessage.from_change_record(change_record("unrecognised"))

    assert publisher.publish(message, Category.CUSTOMER) is None

    sns_client.publish.assert_not_called()
    entry = json.loads(capsys.readouterr().out.strip())
    assert entry["level"] == "WARN"
    assert entry["event"] == "no-topic-configured"
    assert entry["eventType"] == "CUSTOMER"


def test_event_name_attribute_is_omitted_when_record_has_none(publisher, sns_client):
    message = FanoutMessage(keys={"PK": {"S": "LICENSE#abc"}})

    publisher.send(LICENSE_TOPIC, message, Category.LICENSE)

    attributes = sns_client.publish.call_args.kwargs["MessageAttributes"]
    assert set(attributes) == {"eventType"}


def test_transport_errors_propagate_untouched(publisher, sns_client, change_record):
    error = ClientError({"Error": {"Code": "Throttling", "Message": "Rate exceeded"}}, "Publish")
    sns_client.publish.side_effect = error
    message = FanoutMessage.from_change_record(change_record("license_updated"))

    with pytest.raises(ClientError) as excinfo:
        publisher.publish(message, Category.LICENSE)

    assert excinfo.value is error
    assert sns_client.publish.call_count == 1


def test_publish_request_matches_sns_api(log, change_record):
    """Runs the request through a real (stubbed) SNS client so botocore validates its shape."""
    client = boto3.client("sns", region_name="us-east-1")
    publisher = TopicPublisher(client, {Category.LICENSE: LICENSE_TOPIC}, log)
    message = FanoutMessage.from_change_record(change_record("device_activated"))

    with Stubber(client) as stubber:
        stubber.add_response(
            "publish",
            {"MessageId": "stubbed-id"},
            {
                "TopicArn": LICENSE_TOPIC,
                "Message": ANY,
                "MessageAttributes": {
                    "eventType": {"DataType": "String", "StringValue": "LICENSE"},
                    "eventName": {"DataType": "String", "StringValue": "INSERT"},
                },
            },
        )
        assert publisher.publish(message, Category.LICENSE) == "stubbed-id"
        stubber.assert_no_pending_responses()

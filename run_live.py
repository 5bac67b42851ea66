# plg-stream-fanout/run_live.py
"""
Replays a DynamoDB Stream event through the stream processor against real SNS.

Reads credentials and settings from the environment or a .env file, makes
sure the three category topics exist, then invokes the handler locally.

    python run_live.py                       # built-in sample batch
    python run_live.py --event my_event.json
"""
import argparse
import json
import os
from pathlib import Path

import boto3
from botocore.exceptions import ClientError
from dotenv import load_dotenv

TOPIC_ENV_VARS = {
    "PAYMENT_EVENTS_TOPIC_ARN": "plg-payment-events",
    "CUSTOMER_EVENTS_TOPIC_ARN": "plg-customer-events",
    "LICENSE_EVENTS_TOPIC_ARN": "plg-license-events",
}

SAMPLE_EVENT = {
    "Records": [
        {
            "eventID": "1",
            "eventName": "INSERT",
            "dynamodb": {
                "Keys": {"PK": {"S": "USER#42"}, "SK": {"S": "SUB#sub_123"}},
                "NewImage": {"PK": {"S": "USER#42"}, "SK": {"S": "SUB#sub_123"}, "status": {"S": "active"}},
            },
        },
        {
            "eventID": "2",
            "eventName": "MODIFY",
            "dynamodb": {
                "Keys": {"PK": {"S": "LICENSE#lic_abc"}, "SK": {"S": "DETAILS"}},
                "NewImage": {"PK": {"S": "LICENSE#lic_abc"}, "status": {"S": "suspended"}},
                "OldImage": {"PK": {"S": "LICENSE#lic_abc"}, "status": {"S": "active"}},
            },
        },
        {
            "eventID": "3",
            "eventName": "INSERT",
            "dynamodb": {
                "Keys": {"PK": {"S": "EVENT#evt_1"}, "SK": {"S": "2025-06-24T05:54:45Z"}},
                "NewImage": {"eventType": {"S": "payment.succeeded"}},
            },
        },
    ]
}


def setup_topics(region: str) -> None:
    """Creates the category topics if needed and exports their ARNs (create_topic is idempotent)."""
    sns = boto3.client('sns', region_name=region)
    for env_var, topic_name in TOPIC_ENV_VARS.items():
        if os.environ.get(env_var):
            print(f"Using {env_var}={os.environ[env_var]}")
            continue
        try:
            topic_arn = sns.create_topic(Name=topic_name)["TopicArn"]
        except ClientError as e:
            print(f"❌ Could not create topic '{topic_name}': {e.response['Error']['Message']}")
            raise
        os.environ[env_var] = topic_arn
        print(f"Topic '{topic_name}' ready: {topic_arn}")


def load_event(path: str | None) -> dict:
    if not path:
        return SAMPLE_EVENT
    return json.loads(Path(path).read_text(encoding="utf-8"))


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the stream processor locally against live SNS.")
    parser.add_argument("--event", help="Path to a DynamoDB Stream event JSON file.")
    args = parser.parse_args()

    load_dotenv()
    region = os.environ.setdefault("AWS_REGION", "us-east-1")
    setup_topics(region)

    # Imported after the environment is prepared so settings pick up the topic ARNs.
    from lambdas.stream_processor.app import handler

    event = load_event(args.event)
    print(f"--- Replaying {len(event.get('Records', []))} stream record(s) ---")
    result = handler(event, None)
    print(f"✅ Done: {json.dumps(result)}")


if __name__ == "__main__":
    main()

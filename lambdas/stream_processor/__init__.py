"""DynamoDB Stream classifier and SNS fan-out Lambda."""

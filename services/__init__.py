"""
Service layer for AWS operations.

Each module wraps a single boto3 client (S3, SQS, DynamoDB, EventBridge,
SES, Secrets Manager, SSM Parameter Store). The same classes work against
real AWS and against LocalStack when AWS_ENDPOINT_URL is set.
"""

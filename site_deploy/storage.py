import logging
import uuid
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from site_deploy.errors import ProvisioningError

logger = logging.getLogger(__name__)

# Length of the random hex part of generated bucket names.
SUFFIX_LENGTH: int = 8


def generate_bucket_name(prefix: str) -> str:
    """
    Appends a random hex suffix to `prefix`, e.g. `push-tx-static-site-3f9a01bc`.

    Bucket names are global across every AWS account, so the random part is
    what makes a collision very unlikely.
    """
    return f"{prefix}{uuid.uuid4().hex[:SUFFIX_LENGTH]}"


def create_bucket(s3_client: Any, bucket_name: str, region: str) -> str:
    """
    Creates a new S3 bucket in the specified AWS region.

    Simple Explanation:
    Every run gets its own fresh bucket; we never go looking for an old one.
    If AWS refuses (the name is taken, permissions, anything else) the whole
    deployment stops.

    Args:
        s3_client: A boto3 S3 client.
        bucket_name (str): The globally unique bucket name.
        region (str): The AWS region code (e.g. 'us-east-1', 'eu-west-1').

    Returns:
        str: The bucket name that was created.

    Raises:
        ProvisioningError: If S3 rejects the request.
    """
    logger.info(f"Creating S3 bucket {bucket_name}...")
    try:
        # Special handling for 'us-east-1' region which doesn't need LocationConstraint
        if region == "us-east-1":
            s3_client.create_bucket(Bucket=bucket_name)
        else:
            s3_client.create_bucket(
                Bucket=bucket_name,
                CreateBucketConfiguration={"LocationConstraint": region},
            )
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code")
        if error_code in ("BucketAlreadyExists", "BucketAlreadyOwnedByYou"):
            logger.error(f"Bucket name '{bucket_name}' is already taken.")
        else:
            logger.error(f"Failed to create bucket '{bucket_name}'. Error: {e}")
        raise ProvisioningError(f"Failed to create S3 bucket {bucket_name}: {e}") from e
    except BotoCoreError as e:
        logger.error(f"Failed to create bucket '{bucket_name}'. Error: {e}")
        raise ProvisioningError(f"Failed to create S3 bucket {bucket_name}: {e}") from e

    logger.info(f"Successfully created S3 bucket: {bucket_name} in region {region}")
    return bucket_name

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from site_deploy.config import VALIDATION_MAX_ATTEMPTS, VALIDATION_POLL_SECONDS
from site_deploy.errors import ProvisioningError, ValidationFailedError, ValidationTimeoutError
from site_deploy.polling import poll_until

logger = logging.getLogger(__name__)

# Same key type ACM picks when none is given.
KEY_ALGORITHM: str = "RSA_2048"


@dataclass(frozen=True)
class ValidationRecord:
    """The CNAME record the operator must publish to prove domain ownership."""

    name: str
    value: str
    record_type: str = "CNAME"

    @property
    def is_complete(self) -> bool:
        return bool(self.name) and bool(self.value)


# --- Certificate Resolver ---

def find_existing_certificate(acm_client: Any, domain_name: str) -> Optional[str]:
    """
    Looks for an ACM certificate whose primary domain is exactly `domain_name`.

    Simple Explanation:
    Asking ACM for a brand-new certificate every time the script runs would
    leave a pile of duplicates behind. So first we page through every
    certificate in the account and check whether one already covers our
    domain. If several do, we prefer one that is already issued.

    Args:
        acm_client: A boto3 ACM client.
        domain_name (str): The domain to match (exact match, no wildcards).

    Returns:
        Optional[str]: The certificate ARN, or None if nothing matches.
    """
    matches: List[Dict[str, Any]] = []
    try:
        paginator = acm_client.get_paginator("list_certificates")
        for page in paginator.paginate():
            for summary in page.get("CertificateSummaryList", []):
                if summary.get("DomainName") == domain_name:
                    matches.append(summary)
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Failed to list ACM certificates. Error: {e}")
        raise ProvisioningError(f"Could not list ACM certificates: {e}") from e

    if not matches:
        return None

    issued = [summary for summary in matches if summary.get("Status") == "ISSUED"]
    chosen = issued[0] if issued else matches[0]
    if len(matches) > 1:
        logger.warning(f"Found {len(matches)} certificates for {domain_name}; using {chosen['CertificateArn']}")
    return chosen["CertificateArn"]


def request_certificate(acm_client: Any, domain_name: str) -> str:
    """
    Requests a new DNS-validated certificate for `domain_name`.

    Raises:
        ProvisioningError: If the request fails or ACM hands back no ARN.
    """
    try:
        response = acm_client.request_certificate(
            DomainName=domain_name,
            ValidationMethod="DNS",
            KeyAlgorithm=KEY_ALGORITHM,
        )
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Failed to request ACM certificate for {domain_name}. Error: {e}")
        raise ProvisioningError(f"Failed to request ACM certificate: {e}") from e

    certificate_arn = response.get("CertificateArn")
    if not certificate_arn:
        raise ProvisioningError("Failed to request ACM certificate: no certificate ARN returned.")
    return certificate_arn


def resolve_certificate(acm_client: Any, domain_name: str) -> str:
    """
    Returns a usable certificate ARN, reusing an existing certificate when there is one.
    """
    existing_arn = find_existing_certificate(acm_client, domain_name)
    if existing_arn:
        logger.info(f"Existing certificate found for domain {domain_name}. Certificate ARN: {existing_arn}")
        return existing_arn

    logger.info(f"No existing certificate found for domain {domain_name}. Requesting a new ACM certificate...")
    certificate_arn = request_certificate(acm_client, domain_name)
    logger.info(f"New certificate ARN: {certificate_arn}")
    return certificate_arn


# --- Validation Poller ---

def describe_validation_record(acm_client: Any, certificate_arn: str) -> ValidationRecord:
    """
    Reads the first domain-validation record off the certificate.

    ACM fills in `ResourceRecord` a few seconds to minutes after the request,
    so an empty record here is normal and not an error.
    """
    try:
        response = acm_client.describe_certificate(CertificateArn=certificate_arn)
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Failed to describe certificate {certificate_arn}. Error: {e}")
        raise ProvisioningError(f"Could not describe certificate {certificate_arn}: {e}") from e

    options = response.get("Certificate", {}).get("DomainValidationOptions") or [{}]
    resource_record = options[0].get("ResourceRecord") or {}
    logger.debug(f"Validation options: {resource_record}")
    return ValidationRecord(
        name=resource_record.get("Name", ""),
        value=resource_record.get("Value", ""),
        record_type=resource_record.get("Type", "CNAME"),
    )


def get_dns_validation_record(
    acm_client: Any,
    certificate_arn: str,
    max_attempts: int = VALIDATION_MAX_ATTEMPTS,
    interval: float = VALIDATION_POLL_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> ValidationRecord:
    """
    Polls ACM until the DNS validation record for the certificate is available.

    Args:
        acm_client: A boto3 ACM client.
        certificate_arn (str): The certificate to inspect.
        max_attempts (int): How many times to ask ACM before giving up.
        interval (float): Seconds between attempts.
        sleep (Callable[[float], None]): Sleep function, swapped out in tests.

    Returns:
        ValidationRecord: A record with both name and value filled in.

    Raises:
        ValidationTimeoutError: If the record is still empty after `max_attempts` tries.
    """
    record = poll_until(
        check=lambda: describe_validation_record(acm_client, certificate_arn),
        is_done=lambda candidate: candidate.is_complete,
        max_attempts=max_attempts,
        interval=interval,
        sleep=sleep,
        description="DNS validation records",
    )
    if record is None:
        raise ValidationTimeoutError(
            "Unable to retrieve DNS validation records. Please check the ACM certificate details."
        )
    return record


def wait_for_certificate_issued(acm_client: Any, certificate_arn: str) -> None:
    """
    Blocks until ACM reports the certificate as validated.

    Uses the built-in `certificate_validated` waiter, which gives up on its
    own schedule (about 40 minutes) or as soon as validation fails.

    Raises:
        ValidationFailedError: If the waiter fails or times out.
        ProvisioningError: If ACM cannot be reached while waiting.
    """
    logger.info("Waiting for certificate to be issued...")
    try:
        acm_client.get_waiter("certificate_validated").wait(CertificateArn=certificate_arn)
    except WaiterError as e:
        logger.error(f"Error or timeout waiting for certificate {certificate_arn}: {e}")
        raise ValidationFailedError("Certificate validation failed.") from e
    except BotoCoreError as e:
        logger.error(f"Could not check certificate {certificate_arn} while waiting for issuance. Error: {e}")
        raise ProvisioningError(f"Could not check certificate {certificate_arn}: {e}") from e
    logger.info(f"✅ Certificate {certificate_arn} issued.")

"""
==============================================================
 ACM Certificate & CloudFront Stack Deployment Script
==============================================================

Project Explanation:
--------------------
A static website served over HTTPS on its own domain needs three things
from AWS: a TLS certificate for the domain (ACM), a bucket to hold the files
(S3), and a CloudFront distribution in front of it, which lives in a
CloudFormation stack. This script sets all of that up in one go and can be
re-run safely: an existing certificate is reused and an existing stack is
updated rather than created again.

What this script does:
----------------------
1. Finds an ACM certificate for DOMAIN_NAME, or requests a new one.
2. Waits for ACM to publish the DNS validation record and shows it to you.
3. Waits for you to add that record to your DNS zone (press Enter).
4. Waits for ACM to issue the certificate.
5. Creates a new, uniquely named S3 bucket.
6. Creates the CloudFormation stack, or updates it if it already exists.
7. Prints the CloudFront distribution domain name from the stack outputs.

If any step fails the script stops with a non-zero exit status. Nothing
already created is removed.

Requirements:
-------------
- AWS credentials and a default region (`aws configure`), or AWS_REGION.
- DOMAIN_NAME in the environment or in a `.env` file.
- The stack template (`cloudformation-template.yaml` by default).
"""

import argparse
import enum
import logging
import sys
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import boto3
from botocore.exceptions import BotoCoreError

from site_deploy import certificates, stacks, storage
from site_deploy.config import DISTRIBUTION_OUTPUT_KEY, DeployConfig, load_config
from site_deploy.errors import ConfigurationError, DeployError, ProvisioningError
from site_deploy.log import configure_logging
from site_deploy.prompts import (
    DNS_RECORD_PROMPT,
    ConfirmationSource,
    automatic_confirmation,
    interactive_confirmation,
)

logger = logging.getLogger(__name__)


# --- Workflow State ---

class WorkflowState(enum.Enum):
    START = "start"
    CERTIFICATE_RESOLVED = "certificate resolved"
    VALIDATION_RECORD_OBTAINED = "validation record obtained"
    OPERATOR_CONFIRMED = "operator confirmed"
    CERTIFICATE_ISSUED = "certificate issued"
    BUCKET_CREATED = "bucket created"
    STACK_COMPLETE = "stack complete"
    OUTPUT_PRINTED = "output printed"
    ABORTED = "aborted"


WORKFLOW_ORDER: List[WorkflowState] = [
    WorkflowState.START,
    WorkflowState.CERTIFICATE_RESOLVED,
    WorkflowState.VALIDATION_RECORD_OBTAINED,
    WorkflowState.OPERATOR_CONFIRMED,
    WorkflowState.CERTIFICATE_ISSUED,
    WorkflowState.BUCKET_CREATED,
    WorkflowState.STACK_COMPLETE,
    WorkflowState.OUTPUT_PRINTED,
]

TERMINAL_STATES = (WorkflowState.OUTPUT_PRINTED, WorkflowState.ABORTED)


def advance(state: WorkflowState) -> WorkflowState:
    """Returns the state that follows `state` on the success path."""
    if state in TERMINAL_STATES:
        raise ValueError(f"Cannot advance from terminal state '{state.value}'")
    return WORKFLOW_ORDER[WORKFLOW_ORDER.index(state) + 1]


@dataclass(frozen=True)
class DeploymentResult:
    certificate_arn: str
    bucket_name: str
    stack_action: stacks.StackAction
    distribution_domain: str


# --- Orchestration ---

class Deployment:
    """
    One run of the provisioning workflow.

    Simple Explanation:
    Think of this as a checklist that only moves forward. Each step must be
    completely finished (certificate issued, stack complete) before the next
    one starts, and `state` always says how far we got. If a step blows up,
    the state becomes ABORTED and the error is passed on to the caller.

    Args:
        config (DeployConfig): Settings for this run.
        session (boto3.Session): Session used to build the ACM, S3 and CloudFormation clients.
        confirm (ConfirmationSource): Called once the DNS record is shown; returns when the
            operator is done.
        sleep (Optional[Callable[[float], None]]): Sleep used between validation-record polls.
            Defaults to time.sleep.
    """

    def __init__(
        self,
        config: DeployConfig,
        session: boto3.Session,
        confirm: ConfirmationSource = interactive_confirmation,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.config = config
        self.session = session
        self.confirm = confirm
        self.sleep = sleep or time.sleep
        self.state = WorkflowState.START

    def _advance(self) -> None:
        self.state = advance(self.state)
        logger.debug(f"Workflow state: {self.state.value}")

    def _clients(self):
        try:
            return (
                self.session.client("acm"),
                self.session.client("s3"),
                self.session.client("cloudformation"),
            )
        except BotoCoreError as e:
            raise ProvisioningError(f"Could not create AWS clients: {e}") from e

    def run(self) -> DeploymentResult:
        region: Optional[str] = self.session.region_name
        if not region:
            self.state = WorkflowState.ABORTED
            raise ConfigurationError("No AWS region configured. Set AWS_REGION or run 'aws configure'.")

        try:
            template_body = stacks.read_template(self.config.template_file)
            acm_client, s3_client, cf_client = self._clients()

            # 1. Certificate
            certificate_arn = certificates.resolve_certificate(acm_client, self.config.domain_name)
            self._advance()

            # 2. DNS validation record
            record = certificates.get_dns_validation_record(acm_client, certificate_arn, sleep=self.sleep)
            self._advance()
            logger.info("Please add the following DNS record to your domain to validate the ACM certificate:")
            logger.info(f"Name: {record.name}")
            logger.info(f"Type: {record.record_type}")
            logger.info(f"Value: {record.value}")

            # 3. Operator
            self.confirm(DNS_RECORD_PROMPT)
            self._advance()

            # 4. Issuance
            certificates.wait_for_certificate_issued(acm_client, certificate_arn)
            self._advance()

            # 5. Bucket
            bucket_name = storage.create_bucket(
                s3_client, storage.generate_bucket_name(self.config.bucket_prefix), region
            )
            self._advance()

            # 6. Stack
            parameters = stacks.build_stack_parameters(self.config.domain_name, certificate_arn)
            action = stacks.deploy_stack(cf_client, self.config.stack_name, template_body, parameters)
            distribution_domain = stacks.get_stack_output(
                cf_client, self.config.stack_name, DISTRIBUTION_OUTPUT_KEY
            )
            self._advance()

            # 7. Output
            logger.info(f"CloudFront Distribution Domain Name: {distribution_domain}")
            self._advance()
        except (DeployError, KeyboardInterrupt):
            logger.debug(f"Aborting after state '{self.state.value}'")
            self.state = WorkflowState.ABORTED
            raise

        return DeploymentResult(
            certificate_arn=certificate_arn,
            bucket_name=bucket_name,
            stack_action=action,
            distribution_domain=distribution_domain,
        )


def run_deployment(
    config: DeployConfig,
    session: boto3.Session,
    confirm: ConfirmationSource = interactive_confirmation,
    sleep: Optional[Callable[[float], None]] = None,
) -> DeploymentResult:
    """Convenience wrapper: runs a fresh Deployment and returns its result."""
    return Deployment(config, session, confirm=confirm, sleep=sleep).run()


# --- Command Line ---

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parses the command line. `argv` defaults to sys.argv[1:]."""
    parser = argparse.ArgumentParser(
        prog="site-deploy",
        description="Provision an ACM certificate, an S3 bucket and the CloudFront CloudFormation stack for a static site.",
    )
    parser.add_argument(
        "--env-file",
        help="Path to a .env file with DOMAIN_NAME and friends (default: search for .env from the current directory).",
    )
    parser.add_argument(
        "--yes", "-y", action="store_true",
        help="Do not wait for Enter after showing the DNS validation record. For automated runs where DNS is managed elsewhere.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def print_summary(config: DeployConfig, result: DeploymentResult) -> None:
    """Prints the end-of-run summary block to stdout."""
    print("\n" + "=" * 60)
    print("          DEPLOYMENT SUMMARY")
    print("=" * 60)
    print(f" Domain:                {config.domain_name}")
    print(f" Certificate ARN:       {result.certificate_arn}")
    print(f" S3 Bucket Name:        {result.bucket_name}")
    print(f" Stack:                 {config.stack_name} ({result.stack_action.value}d)")
    print(f" CloudFront Domain:     {result.distribution_domain}")
    print("=" * 60 + "\n")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function to orchestrate the deployment process.

    Returns:
        int: 0 on success, 1 if any step failed, 130 if interrupted with Ctrl-C.
    """
    args = parse_args(argv)
    configure_logging(verbose=args.verbose)

    logger.info("=================================================")
    logger.info(" Starting ACM & CloudFront Stack Deployment ")
    logger.info("=================================================")

    try:
        config = load_config(args.env_file)
        session = boto3.Session(region_name=config.region)
        confirm = automatic_confirmation if args.yes else interactive_confirmation
        result = run_deployment(config, session, confirm=confirm)
    except DeployError as e:
        logger.error(str(e))
        logger.error("Deployment aborted. Resources created so far were left in place.")
        return 1
    except KeyboardInterrupt:
        print("\nAborted by user. Exiting.", file=sys.stderr)
        return 130

    print_summary(config, result)
    logger.info("Deployment script finished.")
    return 0


# --- Script Entry Point ---

if __name__ == "__main__":
    sys.exit(main())

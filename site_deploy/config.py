import os
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import find_dotenv, load_dotenv

from site_deploy.errors import ConfigurationError

logger = logging.getLogger(__name__)

# --- Constants ---

# Name of the CloudFormation stack that holds the CloudFront distribution.
DEFAULT_STACK_NAME: str = "push-tx"
# Template uploaded on every create/update. Relative paths resolve from the working directory.
DEFAULT_TEMPLATE_FILE: str = "cloudformation-template.yaml"
# A random hex suffix is appended to this to make the bucket name unique.
DEFAULT_BUCKET_PREFIX: str = "push-tx-static-site-"
# Stack output holding the distribution hostname.
DISTRIBUTION_OUTPUT_KEY: str = "CloudFrontDistributionDomainName"

# ACM usually needs a little while before it publishes the DNS validation record.
VALIDATION_MAX_ATTEMPTS: int = 15
VALIDATION_POLL_SECONDS: int = 20


@dataclass(frozen=True)
class DeployConfig:
    """
    Settings for one deployment run, read from the environment.

    The GitHub owner/name pair is parsed from GITHUB_REPO and carried along,
    but nothing in the workflow reads it yet.
    """

    domain_name: str
    region: Optional[str] = None
    stack_name: str = DEFAULT_STACK_NAME
    template_file: str = DEFAULT_TEMPLATE_FILE
    bucket_prefix: str = DEFAULT_BUCKET_PREFIX
    github_owner: Optional[str] = None
    github_repo_name: Optional[str] = None


def get_required_env(key: str) -> str:
    """
    Retrieves a required environment variable or raises a ConfigurationError if missing.
    """
    value = os.getenv(key, "").strip()
    if not value:
        raise ConfigurationError(f"Required environment variable '{key}' is not set (checked the environment and .env)")
    return value


def split_github_repo(value: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Splits an 'owner/name' string into its two halves.

    Only the first '/' separates, so 'acme/site/extra' gives ('acme', 'site/extra').
    A value without a slash is treated as an owner with no repository name.
    """
    if not value:
        return None, None
    owner, _, name = value.strip().partition("/")
    return owner or None, name or None


def load_config(env_file: Optional[str] = None) -> DeployConfig:
    """
    Builds the DeployConfig from a .env file and the process environment.

    Args:
        env_file (Optional[str]): Path of the .env file to load. When None,
            python-dotenv searches for a `.env` starting from the working directory.
            Variables already present in the environment are never overridden.

    Returns:
        DeployConfig: The settings for this run.

    Raises:
        ConfigurationError: If DOMAIN_NAME is missing.
    """
    if env_file is not None and not os.path.isfile(env_file):
        raise ConfigurationError(f"Environment file not found: {env_file}")

    dotenv_path = env_file or find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path=dotenv_path, override=False)
        logger.debug(f"Loaded environment from {dotenv_path}")

    domain_name = get_required_env("DOMAIN_NAME")
    github_owner, github_repo_name = split_github_repo(os.getenv("GITHUB_REPO"))
    region = os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or None

    return DeployConfig(
        domain_name=domain_name,
        region=region,
        stack_name=os.getenv("STACK_NAME") or DEFAULT_STACK_NAME,
        template_file=os.getenv("STACK_TEMPLATE_FILE") or DEFAULT_TEMPLATE_FILE,
        bucket_prefix=os.getenv("BUCKET_PREFIX") or DEFAULT_BUCKET_PREFIX,
        github_owner=github_owner,
        github_repo_name=github_repo_name,
    )

import enum
import logging
from typing import Any, Dict, List

from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from site_deploy.errors import ProvisioningError

logger = logging.getLogger(__name__)

CAPABILITIES: List[str] = ["CAPABILITY_IAM"]

# CloudFormation's only signal for an update that changes nothing.
NO_UPDATES_MESSAGE: str = "No updates are to be performed"


class StackState(enum.Enum):
    ABSENT = "absent"
    EXISTING = "existing"


class StackAction(enum.Enum):
    CREATE = "create"
    UPDATE = "update"

    @property
    def waiter_name(self) -> str:
        return f"stack_{self.value}_complete"


def stack_action(state: StackState) -> StackAction:
    """A missing stack gets created, anything else gets updated in place."""
    if state is StackState.ABSENT:
        return StackAction.CREATE
    return StackAction.UPDATE


def read_template(path: str) -> str:
    """Reads the stack template as text, raising ProvisioningError if it cannot be opened."""
    try:
        with open(path, "r", encoding="utf-8") as template:
            return template.read()
    except OSError as e:
        logger.error(f"Could not read stack template {path}. Error: {e}")
        raise ProvisioningError(f"Stack template not readable: {path}") from e


def build_stack_parameters(domain_name: str, certificate_arn: str) -> List[Dict[str, str]]:
    """Builds the CloudFormation `Parameters` list for the template."""
    return [
        {"ParameterKey": "DomainName", "ParameterValue": domain_name},
        {"ParameterKey": "CertificateArn", "ParameterValue": certificate_arn},
    ]


def get_stack_state(cf_client: Any, stack_name: str) -> StackState:
    """
    Asks CloudFormation whether the stack exists.

    DescribeStacks on an unknown stack name fails with the error code
    `ValidationError`; that code is the "not found" signal. Any other error
    (throttling, credentials, ...) stops the deployment.

    Raises:
        ProvisioningError: On any error other than the stack being missing.
    """
    try:
        response = cf_client.describe_stacks(StackName=stack_name)
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") == "ValidationError":
            return StackState.ABSENT
        logger.error(f"Failed to describe stack {stack_name}. Error: {e}")
        raise ProvisioningError(f"Could not check stack {stack_name}: {e}") from e
    except BotoCoreError as e:
        logger.error(f"Failed to describe stack {stack_name}. Error: {e}")
        raise ProvisioningError(f"Could not check stack {stack_name}: {e}") from e

    stacks = response.get("Stacks", [])
    if not stacks:
        return StackState.ABSENT
    logger.debug(f"Stack {stack_name} status: {stacks[0].get('StackStatus')}")
    return StackState.EXISTING


def _is_no_op_update(error: ClientError) -> bool:
    details = error.response.get("Error", {})
    return details.get("Code") == "ValidationError" and NO_UPDATES_MESSAGE in details.get("Message", "")


def deploy_stack(
    cf_client: Any,
    stack_name: str,
    template_body: str,
    parameters: List[Dict[str, str]],
) -> StackAction:
    """
    Creates the stack if it is missing, otherwise updates it, and waits for completion.

    Simple Explanation:
    This is the "create or update" switch. We first look at whether the
    stack is already there, pick the matching CloudFormation call, and then
    sit on the official waiter until CloudFormation says the stack finished
    (or rolled back). An update that would change nothing counts as done.

    Args:
        cf_client: A boto3 CloudFormation client.
        stack_name (str): Name of the stack.
        template_body (str): The template text.
        parameters (List[Dict[str, str]]): CloudFormation parameter list.

    Returns:
        StackAction: Whether the stack was created or updated.

    Raises:
        ProvisioningError: If the call is rejected or the stack ends in a failed state.
    """
    action = stack_action(get_stack_state(cf_client, stack_name))
    request = {
        "StackName": stack_name,
        "TemplateBody": template_body,
        "Parameters": parameters,
        "Capabilities": CAPABILITIES,
    }

    try:
        if action is StackAction.CREATE:
            logger.info("Deploying CloudFormation stack...")
            cf_client.create_stack(**request)
        else:
            logger.info("Updating CloudFormation stack...")
            cf_client.update_stack(**request)
    except ClientError as e:
        if action is StackAction.UPDATE and _is_no_op_update(e):
            logger.info(f"Stack {stack_name} is already up to date.")
            return action
        logger.error(f"Failed to {action.value} CloudFormation stack. Error: {e}")
        raise ProvisioningError(f"Failed to {action.value} CloudFormation stack {stack_name}.") from e
    except BotoCoreError as e:
        logger.error(f"Failed to {action.value} CloudFormation stack. Error: {e}")
        raise ProvisioningError(f"Failed to {action.value} CloudFormation stack {stack_name}.") from e

    logger.info(f"Waiting for stack {stack_name} to finish ({action.value})...")
    try:
        cf_client.get_waiter(action.waiter_name).wait(StackName=stack_name)
    except WaiterError as e:
        logger.error(f"Stack {stack_name} did not reach {action.value.upper()}_COMPLETE: {e}")
        raise ProvisioningError(f"CloudFormation stack {action.value} failed for {stack_name}.") from e
    except BotoCoreError as e:
        logger.error(f"Could not check stack {stack_name} while waiting. Error: {e}")
        raise ProvisioningError(f"Could not check stack {stack_name}: {e}") from e

    logger.info(f"✅ Stack {stack_name} {action.value} complete.")
    return action


def get_stack_output(cf_client: Any, stack_name: str, output_key: str) -> str:
    """
    Returns the value of a named stack output.

    Raises:
        ProvisioningError: If the stack cannot be described or the output is missing or empty.
    """
    try:
        response = cf_client.describe_stacks(StackName=stack_name)
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Failed to describe stack {stack_name}. Error: {e}")
        raise ProvisioningError(f"Could not read outputs of stack {stack_name}: {e}") from e

    stacks = response.get("Stacks") or [{}]
    for output in stacks[0].get("Outputs", []):
        if output.get("OutputKey") == output_key and output.get("OutputValue"):
            return output["OutputValue"]
    raise ProvisioningError(f"Stack {stack_name} has no '{output_key}' output.")

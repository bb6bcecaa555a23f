import logging

import boto3
import pytest
from botocore.stub import Stubber

from site_deploy.log import HANDLER_MARKER


def _client(service_name: str, region: str = "us-east-1"):
    return boto3.client(
        service_name,
        region_name=region,
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def acm_client():
    return _client("acm")


@pytest.fixture
def acm_stub(acm_client):
    with Stubber(acm_client) as stubber:
        yield stubber
        stubber.assert_no_pending_responses()


@pytest.fixture
def cf_client():
    return _client("cloudformation")


@pytest.fixture
def cf_stub(cf_client):
    with Stubber(cf_client) as stubber:
        yield stubber
        stubber.assert_no_pending_responses()


@pytest.fixture
def s3_client():
    return _client("s3")


@pytest.fixture
def s3_stub(s3_client):
    with Stubber(s3_client) as stubber:
        yield stubber
        stubber.assert_no_pending_responses()


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, HANDLER_MARKER, False):
            root.removeHandler(handler)
    root.setLevel(logging.WARNING)

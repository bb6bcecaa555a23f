from unittest import mock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, NoCredentialsError

from site_deploy import certificates
from site_deploy.certificates import ValidationRecord
from site_deploy.errors import ProvisioningError, ValidationFailedError, ValidationTimeoutError

CERT_ARN = "arn:aws:acm:us-east-1:123456789012:certificate/cert-123"
OTHER_ARN = "arn:aws:acm:us-east-1:123456789012:certificate/other-456"


def pending_certificate():
    return {
        "Certificate": {
            "CertificateArn": CERT_ARN,
            "DomainName": "example.com",
            "DomainValidationOptions": [
                {"DomainName": "example.com", "ValidationStatus": "PENDING_VALIDATION"}
            ],
        }
    }


def certificate_with_record(validation_status="PENDING_VALIDATION", status="PENDING_VALIDATION"):
    return {
        "Certificate": {
            "CertificateArn": CERT_ARN,
            "DomainName": "example.com",
            "Status": status,
            "DomainValidationOptions": [
                {
                    "DomainName": "example.com",
                    "ValidationStatus": validation_status,
                    "ResourceRecord": {"Name": "_acme.example.com", "Type": "CNAME", "Value": "tokenVal"},
                }
            ],
        }
    }


def test_existing_certificate_is_reused_without_request(acm_client, acm_stub):
    acm_stub.add_response(
        "list_certificates",
        {"CertificateSummaryList": [
            {"CertificateArn": OTHER_ARN, "DomainName": "other.com"},
            {"CertificateArn": CERT_ARN, "DomainName": "example.com"},
        ]},
    )

    # No request_certificate response is queued: calling it would raise a StubResponseError.
    assert certificates.resolve_certificate(acm_client, "example.com") == CERT_ARN


def test_find_prefers_issued_certificate(acm_client, acm_stub):
    acm_stub.add_response(
        "list_certificates",
        {"CertificateSummaryList": [
            {"CertificateArn": OTHER_ARN, "DomainName": "example.com", "Status": "PENDING_VALIDATION"},
            {"CertificateArn": CERT_ARN, "DomainName": "example.com", "Status": "ISSUED"},
        ]},
    )

    assert certificates.find_existing_certificate(acm_client, "example.com") == CERT_ARN


def test_find_does_not_match_subdomains(acm_client, acm_stub):
    acm_stub.add_response(
        "list_certificates",
        {"CertificateSummaryList": [{"CertificateArn": CERT_ARN, "DomainName": "www.example.com"}]},
    )

    assert certificates.find_existing_certificate(acm_client, "example.com") is None


def test_missing_certificate_is_requested_once(acm_client, acm_stub):
    acm_stub.add_response("list_certificates", {"CertificateSummaryList": []})
    acm_stub.add_response(
        "request_certificate",
        {"CertificateArn": CERT_ARN},
        {"DomainName": "example.com", "ValidationMethod": "DNS", "KeyAlgorithm": "RSA_2048"},
    )

    assert certificates.resolve_certificate(acm_client, "example.com") == CERT_ARN


def test_request_failure_raises_provisioning_error(acm_client, acm_stub):
    acm_stub.add_client_error("request_certificate", service_error_code="LimitExceededException")

    with pytest.raises(ProvisioningError):
        certificates.request_certificate(acm_client, "example.com")


def test_request_without_arn_raises_provisioning_error():
    acm = mock.MagicMock()
    acm.request_certificate.return_value = {"CertificateArn": ""}

    with pytest.raises(ProvisioningError):
        certificates.request_certificate(acm, "example.com")


def test_listing_failure_raises_provisioning_error(acm_client, acm_stub):
    acm_stub.add_client_error("list_certificates", service_error_code="AccessDeniedException")

    with pytest.raises(ProvisioningError):
        certificates.find_existing_certificate(acm_client, "example.com")


def test_validation_record_found_on_third_attempt(acm_client, acm_stub):
    acm_stub.add_response("describe_certificate", pending_certificate(), {"CertificateArn": CERT_ARN})
    acm_stub.add_response("describe_certificate", pending_certificate(), {"CertificateArn": CERT_ARN})
    acm_stub.add_response("describe_certificate", certificate_with_record(), {"CertificateArn": CERT_ARN})
    sleep = mock.Mock()

    record = certificates.get_dns_validation_record(acm_client, CERT_ARN, sleep=sleep)

    assert record == ValidationRecord(name="_acme.example.com", value="tokenVal", record_type="CNAME")
    assert sleep.call_args_list == [mock.call(20), mock.call(20)]


def test_validation_record_never_available_times_out_after_fifteen_queries():
    acm = mock.MagicMock()
    acm.describe_certificate.return_value = pending_certificate()
    sleep = mock.Mock()

    with pytest.raises(ValidationTimeoutError):
        certificates.get_dns_validation_record(acm, CERT_ARN, sleep=sleep)

    assert acm.describe_certificate.call_count == 15
    assert sleep.call_count == 14


def test_record_with_empty_value_is_not_accepted():
    acm = mock.MagicMock()
    acm.describe_certificate.side_effect = [
        {"Certificate": {"DomainValidationOptions": [{"ResourceRecord": {"Name": "_acme.example.com", "Value": ""}}]}},
        certificate_with_record(),
    ]

    record = certificates.get_dns_validation_record(acm, CERT_ARN, sleep=mock.Mock())

    assert record.value == "tokenVal"
    assert acm.describe_certificate.call_count == 2


def test_certificate_without_validation_options_reads_as_empty_record():
    acm = mock.MagicMock()
    acm.describe_certificate.return_value = {"Certificate": {"CertificateArn": CERT_ARN}}

    record = certificates.describe_validation_record(acm, CERT_ARN)

    assert not record.is_complete


def test_describe_failure_raises_provisioning_error(acm_client, acm_stub):
    acm_stub.add_client_error("describe_certificate", service_error_code="ResourceNotFoundException")

    with pytest.raises(ProvisioningError):
        certificates.get_dns_validation_record(acm_client, CERT_ARN, sleep=mock.Mock())


def test_wait_for_issued_certificate(acm_client, acm_stub):
    acm_stub.add_response(
        "describe_certificate",
        certificate_with_record(validation_status="SUCCESS", status="ISSUED"),
        {"CertificateArn": CERT_ARN},
    )

    certificates.wait_for_certificate_issued(acm_client, CERT_ARN)


def test_wait_for_failed_certificate_raises(acm_client, acm_stub):
    acm_stub.add_response(
        "describe_certificate",
        certificate_with_record(validation_status="FAILED", status="FAILED"),
        {"CertificateArn": CERT_ARN},
    )

    with pytest.raises(ValidationFailedError):
        certificates.wait_for_certificate_issued(acm_client, CERT_ARN)


def test_client_error_type_is_preserved_as_cause():
    acm = mock.MagicMock()
    error = ClientError({"Error": {"Code": "ThrottlingException", "Message": "slow down"}}, "RequestCertificate")
    acm.request_certificate.side_effect = error

    with pytest.raises(ProvisioningError) as excinfo:
        certificates.request_certificate(acm, "example.com")

    assert excinfo.value.__cause__ is error


@pytest.mark.parametrize("attempts", [1, 15])
def test_validation_record_found_on_boundary_attempt(attempts):
    acm = mock.MagicMock()
    acm.describe_certificate.side_effect = [pending_certificate()] * (attempts - 1) + [certificate_with_record()]
    sleep = mock.Mock()

    record = certificates.get_dns_validation_record(acm, CERT_ARN, sleep=sleep)

    assert record.value == "tokenVal"
    assert acm.describe_certificate.call_count == attempts
    assert sleep.call_count == attempts - 1


def test_missing_credentials_while_listing_raise_provisioning_error():
    acm = mock.MagicMock()
    error = NoCredentialsError()
    acm.get_paginator.return_value.paginate.side_effect = error

    with pytest.raises(ProvisioningError) as excinfo:
        certificates.find_existing_certificate(acm, "example.com")

    assert excinfo.value.__cause__ is error


def test_connection_error_while_describing_raises_provisioning_error():
    acm = mock.MagicMock()
    acm.describe_certificate.side_effect = EndpointConnectionError(endpoint_url="https://acm.us-east-1.amazonaws.com/")

    with pytest.raises(ProvisioningError):
        certificates.get_dns_validation_record(acm, CERT_ARN, sleep=mock.Mock())


def test_connection_error_during_issuance_wait_is_not_a_validation_failure():
    acm = mock.MagicMock()
    acm.get_waiter.return_value.wait.side_effect = EndpointConnectionError(
        endpoint_url="https://acm.us-east-1.amazonaws.com/"
    )

    with pytest.raises(ProvisioningError):
        certificates.wait_for_certificate_issued(acm, CERT_ARN)

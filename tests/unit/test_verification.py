import pytest

from idgateway.core.errors import IdpUnavailableError


def test_unverified_email(gateway, fake_keycloak):
    fake_keycloak.add_user("ines@example.com", email_verified=False)

    assert gateway.verification.is_email_verified("ines@example.com") is False


def test_verified_email(gateway, fake_keycloak):
    fake_keycloak.add_user("joao@example.com", email_verified=True)

    assert gateway.verification.is_email_verified("JOAO@example.com") is True


def test_unknown_identifier_counts_as_verified(gateway):
    assert gateway.verification.is_email_verified("ghost@example.com") is True


def test_lookup_failure_is_not_treated_as_verified(gateway, fake_keycloak):
    fake_keycloak.fail("GET", "/users")

    with pytest.raises(IdpUnavailableError):
        gateway.verification.is_email_verified("kim@example.com")

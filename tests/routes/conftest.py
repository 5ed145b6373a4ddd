"""Shared fixtures for route tests"""

import pytest


@pytest.fixture
def identify(client):
    """POST a JSON body to /identify and return the response"""

    def _identify(email=None, phone_number=None, **extra):
        body = {"email": email, "phoneNumber": phone_number, **extra}
        return client.post("/identify", json=body)

    return _identify

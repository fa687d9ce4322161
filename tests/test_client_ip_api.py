"""
Tests for the client IP API.
"""

import pytest
import sys
import os

# Add the parent directory to the path so we can import main
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from main import app
from app.middleware.client_ip import ClientIPMiddleware
from app.utils.helpers import build_header_priority

client = TestClient(app)

def test_root_endpoint():
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Client IP API"
    assert data["version"] == "0.1.0"
    assert data["status"] == "running"

def test_health_check():
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "version": "0.1.0"}

def test_client_ip_from_forwarded_for():
    """Test the left-most valid X-Forwarded-For entry is reported."""
    response = client.get("/api/v1/client-ip/", headers={
        "X-Forwarded-For": "unknown, 70.41.3.18, 150.172.238.178"
    })
    assert response.status_code == 200
    assert response.json() == {"client_ip": "70.41.3.18", "source": "x-forwarded-for", "found": True}

def test_client_ip_header_precedence():
    """Test X-Client-IP beats X-Forwarded-For and X-Real-IP."""
    response = client.get("/api/v1/client-ip/", headers={
        "X-Real-IP": "198.51.100.20",
        "X-Forwarded-For": "203.0.113.5",
        "X-Client-IP": "192.0.2.44",
    })
    assert response.status_code == 200
    assert response.json()["client_ip"] == "192.0.2.44"
    assert response.json()["source"] == "x-client-ip"

def test_client_ip_not_found():
    """Test a request with no usable address still succeeds."""
    response = client.get("/api/v1/client-ip/", headers={"X-Real-IP": "unknown"})
    assert response.status_code == 200
    assert response.json() == {"client_ip": "", "source": None, "found": False}

def test_header_priority_listing():
    """Test the default header order is reported."""
    response = client.get("/api/v1/client-ip/headers")
    assert response.status_code == 200
    data = response.json()
    assert data["headers"][:2] == ["x-client-ip", "x-forwarded-for"]
    assert data["headers"][-1] == "forwarded"
    assert len(data["headers"]) == 10
    assert data["strip_remote_port"] is False


def _middleware_app(**kwargs):
    test_app = FastAPI()
    test_app.add_middleware(ClientIPMiddleware, **kwargs)

    @test_app.get("/state")
    def read_state(request: Request):
        return {"ip": request.state.client_ip, "source": request.state.client_ip_source}

    return test_app

def test_middleware_sets_request_state():
    """Test the middleware stores the resolved IP on request.state."""
    test_client = TestClient(_middleware_app())
    response = test_client.get("/state", headers={"CF-Connecting-IP": "203.0.113.77"})
    assert response.status_code == 200
    assert response.json() == {"ip": "203.0.113.77", "source": "cf-connecting-ip"}

def test_middleware_custom_priority():
    """Test the middleware honours a custom header priority."""
    test_client = TestClient(_middleware_app(header_priority=build_header_priority(["x-real-ip"])))
    response = test_client.get("/state", headers={
        "X-Client-IP": "192.0.2.44",
        "X-Real-IP": "198.51.100.20",
    })
    assert response.json() == {"ip": "198.51.100.20", "source": "x-real-ip"}

@pytest.mark.parametrize("strip_remote_port", [False, True])
def test_middleware_non_ip_peer(strip_remote_port):
    """Test a peer host that is not an IP never resolves, port or not."""
    test_client = TestClient(_middleware_app(strip_remote_port=strip_remote_port))
    response = test_client.get("/state")
    assert response.json() == {"ip": "", "source": None}

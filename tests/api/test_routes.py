"""Tests for the HTTP import endpoints."""
from __future__ import annotations

import inspect

import pytest
from fastapi.testclient import TestClient

from shop_import.api import create_app, routes
from shop_import.config import ImportSettings
from shop_import.repositories import InMemoryCustomerRepository

TENANT = {"X-Tenant-ID": "shop-1"}


class BrokenLookupRepository(InMemoryCustomerRepository):
    def find_existing_phones(self, tenant_id, phones):
        raise RuntimeError("database unavailable")


@pytest.fixture()
def repository():
    repository = InMemoryCustomerRepository()
    repository.seed("shop-1", "5559990000")
    return repository


@pytest.fixture()
def client(repository):
    return TestClient(create_app(repository, ImportSettings(duplicate_check_limit=3)))


def test_requests_without_tenant_are_unauthorized(client):
    response = client.post("/import/check-duplicates", json={"phones": ["5559990000"]})

    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}


def test_check_duplicates_returns_existing_phones(client):
    response = client.post(
        "/import/check-duplicates", json={"phones": ["5559990000", "5551234567"]}, headers=TENANT
    )

    assert response.status_code == 200
    assert response.json() == {"existingPhones": ["5559990000"]}


def test_check_duplicates_caps_and_filters_input(client):
    phones = ["555", 5559990000, "5551234567", "5559990000"]

    response = client.post("/import/check-duplicates", json={"phones": phones}, headers=TENANT)

    assert response.json() == {"existingPhones": []}


def test_check_duplicates_reports_lookup_failure():
    client = TestClient(create_app(BrokenLookupRepository()))

    response = client.post("/import/check-duplicates", json={"phones": ["5559990000"]}, headers=TENANT)

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to check duplicates"}


def test_import_requires_rows(client):
    response = client.post("/import", json={"rows": [], "smsConsent": False}, headers=TENANT)

    assert response.status_code == 400
    assert response.json() == {"detail": "No data to import"}


def test_import_commits_rows_and_returns_camel_case(client, repository):
    rows = [
        {
            "firstName": "John",
            "lastName": "Doe",
            "phone": "5551234567",
            "vehicleYear": 2018,
            "vehicleMake": "Honda",
            "vehicleModel": "Civic",
            "lastServiceDate": "2024-01-15",
            "lastServiceMileage": "45000",
        },
        {"firstName": "Ann", "phone": "5559990000"},
        {"firstName": "Bob", "phone": "555"},
    ]

    response = client.post(
        "/import", json={"rows": rows, "smsConsent": True, "format": "standard"}, headers=TENANT
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": 1,
        "errors": 1,
        "duplicates": 1,
        "updated": 0,
        "message": "Imported 1 customers with 1 errors",
        "vehiclesCreated": 1,
        "serviceRecordsCreated": 1,
        "details": ["Row 3: Invalid phone number"],
        "format": "standard",
    }
    assert len(repository.consent_events) == 1


def test_preview_detects_mappings_and_summarises(client):
    content = b'Full Name,Phone\n"Smith, John",(555) 123-4567\nJane Roe,555\n'

    response = client.post(
        "/import/preview", files={"file": ("customers.csv", content, "text/csv")}, headers=TENANT
    )

    assert response.status_code == 200
    body = response.json()
    assert body["fileName"] == "customers.csv"
    assert body["fileKind"] == "csv"
    assert body["totalRows"] == 2
    assert body["format"] == "shop"
    assert [item["targetField"] for item in body["mappings"]] == ["fullName", "phone"]
    assert body["missingFields"] == []
    assert body["summary"]["errorRows"] == 1
    assert body["summary"]["namesSplit"] == 2


def test_preview_without_required_fields_omits_summary(client):
    content = b"Notes,Comments\nfoo,bar\n"

    response = client.post(
        "/import/preview", files={"file": ("notes.csv", content, "text/csv")}, headers=TENANT
    )

    body = response.json()
    assert body["missingFields"] == ["Phone", "First Name or Full Name"]
    assert "summary" not in body


def test_preview_rejects_unreadable_files(client):
    response = client.post(
        "/import/preview", files={"file": ("customers.pdf", b"%PDF", "application/pdf")}, headers=TENANT
    )

    assert response.status_code == 400


@pytest.mark.parametrize("kind, first_header", [("standard", "firstName"), ("shop", "Full Name")])
def test_templates_are_downloadable(client, kind, first_header):
    response = client.get(f"/import/templates/{kind}")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert f"customer-import-{kind}.csv" in response.headers["content-disposition"]
    assert response.text.splitlines()[0].split(",")[0] == first_header


def test_unknown_template_is_not_found(client):
    assert client.get("/import/templates/fancy").status_code == 404


def test_preview_runs_in_the_threadpool():
    # Parsing and cleaning block, so the handler must be a plain function.
    assert not inspect.iscoroutinefunction(routes.preview_file)

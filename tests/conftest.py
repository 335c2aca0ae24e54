"""Shared fixtures: complete sample form data and an in-memory state machine.

The sample forms describe one consistent case so they can be combined in any
packet without producing cross-form inconsistencies.
"""

import pytest

from packetflow.config import PacketFlowSettings
from packetflow.events import EventEmitter
from packetflow.state_machine import WorkflowStateMachine
from packetflow.store import InMemoryDocumentStore, InMemoryVaultProvider, InMemoryWorkflowRepository

CASE_NUMBER = "FL123456"
COUNTY = "Los Angeles"
PETITIONER = "Jane Smith"
RESPONDENT = "John Smith"


@pytest.fixture
def dv100_data():
    return {
        "protectedPersonName": PETITIONER,
        "protectedPersonAddress": "100 Main St",
        "protectedPersonCity": "Los Angeles",
        "protectedPersonState": "CA",
        "protectedPersonZip": "90012",
        "protectedPersonDOB": "1985-04-12",
        "protectedPersonGender": "F",
        "protectedPersonRace": "White",
        "restrainedPersonName": RESPONDENT,
        "restrainedPersonDOB": "1983-02-01",
        "restrainedPersonGender": "M",
        "relationship": "spouse",
        "abuseDescription": (
            "On October 1st he pushed me against the kitchen wall and broke my phone "
            "so I could not call for help."
        ),
        "physicalAbuse": True,
        "personalConductOrders": True,
        "stayAwayOrders": True,
        "caseNumber": CASE_NUMBER,
        "county": COUNTY,
        "signatureDate": "2025-10-02",
        "signature": PETITIONER,
    }


@pytest.fixture
def clets_data():
    return {
        "protectedPersonName": PETITIONER,
        "protectedPersonAddress": "100 Main St",
        "protectedPersonCity": "Los Angeles",
        "protectedPersonState": "CA",
        "protectedPersonZip": "90012",
        "protectedPersonDOB": "1985-04-12",
        "protectedPersonGender": "F",
        "protectedPersonRace": "White",
        "restrainedPersonName": RESPONDENT,
        "restrainedPersonDOB": "1983-02-01",
        "restrainedPersonGender": "M",
        "restrainedPersonHeight": "5'11\"",
        "restrainedPersonWeight": "180",
        "restrainedPersonHairColor": "Brown",
        "restrainedPersonEyeColor": "Blue",
        "lawEnforcementAgency": "LAPD",
        "caseNumber": CASE_NUMBER,
        "county": COUNTY,
    }


@pytest.fixture
def dv105_data():
    return {
        "petitionerName": PETITIONER,
        "respondentName": RESPONDENT,
        "caseNumber": CASE_NUMBER,
        "county": COUNTY,
        "children": [{"name": "Amy Smith", "birthdate": "2015-06-01"}],
        "custodyOrders": "sole legal and physical custody to petitioner",
        "visitationOrders": "supervised visitation",
        "currentCustodyArrangement": "Children live with petitioner",
    }


@pytest.fixture
def fl150_data():
    return {
        "partyName": PETITIONER,
        "petitioner": PETITIONER,
        "respondent": RESPONDENT,
        "caseNumber": CASE_NUMBER,
        "county": COUNTY,
        "employmentStatus": "unemployed",
        "averageMonthlyIncome": 4000,
        "averageMonthlyExpenses": 3500,
        "signatureDate": "2025-10-02",
        "signature": PETITIONER,
    }


@pytest.fixture
def dv101_data():
    return {
        "incidentDate": "2025-10-01",
        "incidentDescription": "He threw a glass at me during an argument.",
        "caseNumber": CASE_NUMBER,
    }


@pytest.fixture
def dv120_data():
    return {
        "respondentName": RESPONDENT,
        "petitionerName": PETITIONER,
        "caseNumber": CASE_NUMBER,
        "county": COUNTY,
        "agreeOrDisagree": "disagree",
        "attorneyName": "Ann Lawyer",
        "firmName": "Lawyer LLP",
        "stateBarNumber": "123456",
        "streetAddress": "200 Spring St",
        "city": "Los Angeles",
        "state": "CA",
        "zipCode": "90013",
        "telephoneNo": "(213) 555-0100",
        "email": "john@example.com",
        "signatureDate": "2025-10-10",
        "signature": RESPONDENT,
    }


@pytest.fixture
def vault_record():
    return {
        "full_name": PETITIONER,
        "street_address": "100 Main St",
        "city": "Los Angeles",
        "state": "CA",
        "zip_code": "90012",
        "phone": "(213) 555-0199",
        "email": "jane@example.com",
        "county": "Orange",
        "date_of_birth": "1985-04-12",
    }


@pytest.fixture
def documents():
    return InMemoryDocumentStore()


@pytest.fixture
def workflows():
    return InMemoryWorkflowRepository()


@pytest.fixture
def emitter():
    return EventEmitter()


@pytest.fixture
def state_machine(documents, workflows, emitter):
    """State machine without a vault, so autofill only uses previous forms."""
    return WorkflowStateMachine(documents, workflows, settings=PacketFlowSettings(), emitter=emitter)


@pytest.fixture
def vault_state_machine(documents, workflows, vault_record):
    vault = InMemoryVaultProvider({"user_1": vault_record})
    return WorkflowStateMachine(documents, workflows, vault=vault, settings=PacketFlowSettings())

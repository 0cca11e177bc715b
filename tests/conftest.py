"""
Shared fixtures: raw estimate payloads as the backend returns them.
"""
import copy
import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from studio_budget.domain.services.hierarchy_builder import build_estimate
from studio_budget.domain.services.rollup_service import RollupAggregator


SAMPLE_PAYLOAD = {
    "_id": "est-1",
    "projectId": {"_id": "proj-1", "name": "Karen Villa"},
    "name": "Main Estimate",
    "status": "approved",
    "date": "2024-03-01T00:00:00.000Z",
    "groups": [
        {
            "grpId": "grp-1",
            "code": "A",
            "name": "Substructure",
            "rate": 100,
            "quantity": 5,
            "sections": [
                {
                    "secId": "sec-1",
                    "code": "A.1",
                    "name": "Excavation",
                    "amount": 300,
                    "spent": 100,
                    "subsections": [
                        {"subId": "sub-1", "code": "A.1.1", "name": "Bulk dig",
                         "amount": 150, "spent": 40},
                        {"subId": "sub-2", "code": "A.1.2", "name": "Trenches",
                         "total": "150", "spent": "60"},
                    ],
                },
                {
                    "secId": "sec-2",
                    "code": "A.2",
                    "name": "Hardcore",
                    "rate": "KES 1,000",
                    "quantity": "2",
                    "unit": "m3",
                    "subsections": None,
                },
            ],
        },
        {
            "grpId": "grp-2",
            "code": "B",
            "name": "Preliminaries",
            "amount": 800,
            "spent": 850,
        },
    ],
}

# One group, one section, two subsections; parent amounts disagree with children
SCENARIO_PAYLOAD = {
    "_id": "est-9",
    "projectId": "proj-9",
    "groups": [
        {
            "grpId": "g",
            "rate": 100,
            "quantity": 5,
            "sections": [
                {
                    "secId": "s",
                    "amount": 300,
                    "spent": 100,
                    "subsections": [
                        {"subId": "a", "amount": 150, "spent": 40},
                        {"subId": "b", "amount": 150, "spent": 60},
                    ],
                },
            ],
        },
    ],
}


@pytest.fixture
def sample_payload():
    """Deep copy of the sample payload, safe to mutate."""
    return copy.deepcopy(SAMPLE_PAYLOAD)


@pytest.fixture
def scenario_payload():
    return copy.deepcopy(SCENARIO_PAYLOAD)


@pytest.fixture
def sample_estimate(sample_payload):
    """Built (not yet aggregated) sample estimate."""
    return build_estimate(sample_payload)


@pytest.fixture
def aggregated_estimate(sample_estimate):
    """Sample estimate aggregated bottom-up."""
    return RollupAggregator(policy="bottom_up", tolerance="0.01").aggregate(sample_estimate)


@pytest.fixture
def empty_estimate():
    return build_estimate({"_id": "est-empty", "projectId": "proj-1", "groups": []})

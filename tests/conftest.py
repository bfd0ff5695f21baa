import copy
import itertools
import json

import pytest

from plan_sandbox.attestation import attest
from plan_sandbox.audit import MemoryAuditLog
from plan_sandbox.pipeline import PlanRunner

STEPS = [
    {"id": 1, "generator": "sitemap", "output": "sitemap.md", "description": "Draft sitemap"},
    {"id": 2, "generator": "copy", "output": "copy.md", "description": "Draft page copy"},
    {"id": 3, "generator": "tokens", "output": "tokens.json", "description": "Design tokens"},
    {"id": 4, "generator": "scaffold_tree", "output": "scaffold-tree.txt", "description": "Site tree"},
    {"id": 5, "generator": "content_map", "output": "content-map.json", "description": "Content map"},
]


@pytest.fixture
def plan_doc():
    return {
        "plan_id": "P1",
        "skill_id": "s",
        "skill_version": "1",
        "inputs": {"business_name": "Acme", "city_region": "X"},
        "constraints": {},
        "steps": copy.deepcopy(STEPS),
    }


@pytest.fixture
def write_plan(tmp_path):
    """Write a plan document to disk, attesting it first unless told not to."""

    def _write(doc, signed=True, name="plan.json"):
        if signed:
            doc = attest(doc)
        plans = tmp_path / "plans"
        plans.mkdir(exist_ok=True)
        path = plans / name
        path.write_text(json.dumps(doc, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def clock():
    counter = itertools.count()
    return lambda: f"2026-01-01T00:00:{next(counter):02d}.000Z"


@pytest.fixture
def audit():
    return MemoryAuditLog()


@pytest.fixture
def runner(tmp_path, audit, clock):
    return PlanRunner(artifacts_root=tmp_path / "artifacts", audit_log=audit, clock=clock)

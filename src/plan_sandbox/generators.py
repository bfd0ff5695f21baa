# generators.py
# Step generator registry — placeholder content producers.
# The pipeline looks generators up in GENERATORS and never imports them by name.
#
# Contract: generator(plan, step) -> str. Pure: same plan and step, same text.

import json
from typing import Callable

from plan_sandbox.models import Plan, StepSpec

Generator = Callable[[Plan, StepSpec], str]


def _require_input(plan: Plan, key: str) -> str:
    value = plan.inputs.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"inputs.{key} is required and must be a non-empty string")
    return value.strip()


def _gen_sitemap(plan: Plan, step: StepSpec) -> str:
    return (
        "# Sitemap (DEMO / DRAFT)\n\n"
        "- Home\n"
        "  - Hero\n"
        "  - Trust Strip (placeholders)\n"
        "  - Services Snapshot\n"
        "  - Featured Work (placeholders)\n"
        "  - Process\n"
        "  - Safety & Compliance (generic)\n"
        "  - FAQ\n"
        "  - Contact (placeholder)\n"
        "- Services\n"
        "  - Trenching & Excavation\n"
        "  - Underground Utilities Support\n"
        "  - Site Servicing\n"
        "- Projects (placeholders)\n"
        "- About\n"
        "- Trust & Compliance\n"
        "- Contact\n"
    )


def _gen_copy(plan: Plan, step: StepSpec) -> str:
    business = _require_input(plan, "business_name")
    region = _require_input(plan, "city_region")
    return (
        "# Copy (DEMO / DRAFT — NOT FOR PUBLIC USE)\n\n"
        "## HOME\n\n"
        "**Hero:** Built for the jobs that can't fail.\n\n"
        "**Subhead:** Civil excavation and underground utility support for contractors "
        f"and public-sector work across {region}.\n\n"
        "**Note:** Replace all placeholders with verified proof before public use.\n\n"
        "**CTA:** Request a Demo Walkthrough (draft)\n\n"
        "### Trust Strip (placeholders only)\n"
        f"- Serving {region}\n"
        "- Safety-first crews\n"
        "- Documented process\n"
        "- [CERTIFICATION / PREQUALIFICATION]\n\n"
        "## SERVICES (draft)\n"
        "- Trenching & Excavation — clean execution, controlled site discipline.\n"
        "- Underground Utilities Support — inspection-ready coordination.\n"
        "- Site Servicing — staged work to reduce rework and delays.\n\n"
        "## ABOUT (draft)\n"
        f"{business} operates like a serious partner on serious sites — "
        "clear communication and predictable process.\n\n"
        "## CONTACT (draft)\n"
        "Form fields only. No real phone/email/address in demo.\n"
    )


def _gen_tokens(plan: Plan, step: StepSpec) -> str:
    tokens = {
        "typography": {"h1": "2.25rem", "h2": "1.5rem", "body": "1rem"},
        "spacing": [4, 8, 12, 16, 24, 32],
        "radius": [8, 16, 24],
        "shadows": ["sm", "md", "lg"],
    }
    return json.dumps(tokens, indent=2)


def _gen_scaffold_tree(plan: Plan, step: StepSpec) -> str:
    return (
        "/site\n"
        "  /pages\n"
        "    index\n"
        "    services\n"
        "    projects\n"
        "    about\n"
        "    trust-compliance\n"
        "    contact\n"
        "  /components\n"
        "    Hero\n"
        "    ProofStrip\n"
        "    ServicesGrid\n"
        "    CaseStudyCard\n"
        "    ProcessSteps\n"
        "    FAQ\n"
        "    FooterLegalCluster\n"
        "  /content\n"
        "    sitemap.md\n"
        "    copy.md\n"
        "    content-map.json\n"
        "  /styles\n"
        "    tokens.json\n"
    )


def _gen_content_map(plan: Plan, step: StepSpec) -> str:
    content_map = {
        "home": ["hero", "trust_strip", "services_snapshot", "featured_work", "process", "faq", "contact"],
        "services": ["trenching", "utilities_support", "site_servicing"],
        "about": ["story", "values"],
        "contact": ["form"],
    }
    return json.dumps(content_map, indent=2)


GENERATORS: dict[str, Generator] = {
    "sitemap":       _gen_sitemap,
    "copy":          _gen_copy,
    "tokens":        _gen_tokens,
    "scaffold_tree": _gen_scaffold_tree,
    "content_map":   _gen_content_map,
}

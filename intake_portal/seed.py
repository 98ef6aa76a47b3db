"""Seed the global onboarding checklist templates."""
from sqlalchemy.orm import Session
from intake_portal.models.checklist import ChecklistTemplate
from intake_portal.models.project import ModuleType


def seed_checklist_templates(db: Session) -> None:
    if db.query(ChecklistTemplate).count() > 0:
        return
    core, comms, fnol = ModuleType.core.value, ModuleType.comms.value, ModuleType.fnol.value
    templates = [
        ChecklistTemplate(
            name="Kickoff call",
            description="Introductory call with the client team to confirm scope and timeline.",
            category="discovery",
            order_index=10,
            required_for_modules=[],
        ),
        ChecklistTemplate(
            name="Sign Statement of Work",
            description="Review and approve the Statement of Work in the portal.",
            category="contract",
            order_index=20,
            required_for_modules=[],
        ),
        ChecklistTemplate(
            name="Provide claim data sample",
            description="Share a representative export of recent claims for mapping.",
            category="data",
            order_index=30,
            required_for_modules=[core],
        ),
        ChecklistTemplate(
            name="Configure SSO",
            description="Exchange identity provider metadata if single sign-on is required.",
            category="security",
            order_index=40,
            required_for_modules=[core],
        ),
        ChecklistTemplate(
            name="Approve message templates",
            description="Review policyholder email and SMS templates.",
            category="communications",
            order_index=50,
            required_for_modules=[comms],
        ),
        ChecklistTemplate(
            name="Verify sending domain",
            description="Add DNS records so outbound email is sent from your domain.",
            category="communications",
            order_index=60,
            required_for_modules=[comms],
        ),
        ChecklistTemplate(
            name="Confirm FNOL intake channels",
            description="Confirm which first notice of loss channels go live at launch.",
            category="fnol",
            order_index=70,
            required_for_modules=[fnol],
        ),
        ChecklistTemplate(
            name="Map claim systems",
            description="Map fields between the claim system of record and Claims iQ.",
            category="integration",
            order_index=80,
            required_for_modules=[core, fnol],
        ),
        ChecklistTemplate(
            name="User acceptance testing",
            description="Client sign-off after end-to-end testing.",
            category="launch",
            order_index=90,
            required_for_modules=[],
        ),
        ChecklistTemplate(
            name="Go-live readiness review",
            description="Final review before production cut-over.",
            category="launch",
            order_index=100,
            required_for_modules=[],
        ),
    ]
    for t in templates:
        db.add(t)
    db.commit()

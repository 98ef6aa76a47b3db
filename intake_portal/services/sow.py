"""Statement of Work PDF (reportlab, letter size).

Fixed layout: header, then sections 1-5: Client Information, Selected Modules,
Implementation Timeline, Terms, Signatures.
"""
from __future__ import annotations

from datetime import datetime
from io import BytesIO

from sqlalchemy.orm import Session

from intake_portal.config import get_settings
from intake_portal.database import as_utc
from intake_portal.models.company import Company, Contact, ContactRole
from intake_portal.models.project import CONFIG_MODELS, ModuleSelection, OnboardingProject

MODULE_TITLES = {
    "core": "Core Claims Processing",
    "comms": "Communications",
    "fnol": "First Notice of Loss (FNOL)",
}

TIMELINE = [
    ("Phase 1", "Discovery & Requirements", "Weeks 1-2"),
    ("Phase 2", "Configuration & Integration", "Weeks 3-6"),
    ("Phase 3", "Testing & Training", "Weeks 7-8"),
    ("Phase 4", "Go-Live & Hypercare", "Weeks 9-10"),
]

TERMS = [
    "This Statement of Work is governed by the Master Services Agreement between the parties.",
    "Timelines are estimates and depend on timely delivery of client data, access and approvals.",
    "Changes to scope require a written change request approved by both parties.",
    "Fees and payment terms are set out in the accompanying order form.",
]


def _escape_for_reportlab(s: str) -> str:
    """Escape text for ReportLab Paragraph (XML-like markup)."""
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
    )


def _fmt_date(value: datetime | None) -> str:
    return as_utc(value).strftime("%B %d, %Y") if value else ""


def _module_lines(db: Session, project_id: str) -> list[str]:
    lines = []
    selections = db.query(ModuleSelection).filter(
        ModuleSelection.project_id == project_id,
        ModuleSelection.is_selected.is_(True),
    ).all()
    for selection in sorted(selections, key=lambda s: s.module_type.value):
        title = MODULE_TITLES.get(selection.module_type.value, selection.module_type.value)
        model = CONFIG_MODELS[selection.module_type]
        config = db.query(model).filter(model.module_selection_id == selection.id).first()
        detail = ""
        if config is not None:
            volume = getattr(config, "monthly_claim_volume", None) or getattr(config, "monthly_message_volume", None) or getattr(config, "monthly_fnol_volume", None)
            if volume:
                detail = f" (estimated monthly volume: {volume:,})"
        lines.append(f"{title}{detail}")
    return lines


def build_sow_pdf(db: Session, project: OnboardingProject) -> bytes:
    from reportlab.lib import colors
    from reportlab.lib.pagesizes import letter
    from reportlab.lib.styles import getSampleStyleSheet
    from reportlab.lib.units import inch
    from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

    company = db.query(Company).filter(Company.id == project.company_id).first()
    primary = db.query(Contact).filter(
        Contact.company_id == project.company_id,
        Contact.role == ContactRole.primary,
    ).first()
    brand = get_settings().brand_name

    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=letter,
        leftMargin=0.75 * inch,
        rightMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title="Statement of Work",
    )
    styles = getSampleStyleSheet()
    h2 = styles["Heading2"]
    body = styles["Normal"].clone("SowBody", spaceAfter=6)

    def para(text: str, style=body):
        return Paragraph(_escape_for_reportlab(text), style)

    company_name = company.legal_name if company else "Client"
    story = [
        para(f"{brand} Statement of Work", styles["Title"]),
        para(f"Prepared for {company_name}"),
        para(f"Project ID: {project.id}"),
        para(f"Date: {datetime.now().strftime('%B %d, %Y')}"),
        Spacer(1, 0.2 * inch),
        para("1. Client Information", h2),
    ]
    if company:
        story.append(para(f"Legal name: {company.legal_name}"))
        if company.dba_name:
            story.append(para(f"Doing business as: {company.dba_name}"))
        address = ", ".join(p for p in (company.address_line_1, company.address_line_2, company.city, company.state, company.postal_code) if p)
        if address:
            story.append(para(f"Address: {address}"))
    if primary:
        story.append(para(f"Primary contact: {primary.first_name} {primary.last_name} ({primary.email})"))

    story.append(para("2. Selected Modules", h2))
    modules = _module_lines(db, project.id)
    for line in modules or ["No modules selected"]:
        story.append(para(f"- {line}"))

    story.append(para("3. Implementation Timeline", h2))
    table = Table([("Phase", "Activities", "Duration")] + TIMELINE, colWidths=[1.2 * inch, 3.6 * inch, 1.6 * inch])
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1a56db")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]))
    story.append(table)
    if project.target_go_live_date:
        story.append(Spacer(1, 0.1 * inch))
        story.append(para(f"Target go-live date: {project.target_go_live_date.strftime('%B %d, %Y')}"))

    story.append(para("4. Terms", h2))
    for i, term in enumerate(TERMS, start=1):
        story.append(para(f"{i}. {term}"))

    story.append(para("5. Signatures", h2))
    client_signed = f"Signed electronically on {_fmt_date(project.sow_signed_at)}" if project.sow_signed_at else "Signature: ______________________"
    signatures = Table(
        [
            (f"Client: {company_name}", f"Provider: {brand}"),
            (client_signed, "Signature: ______________________"),
            ("Name / Title: ____________________", "Name / Title: ____________________"),
            ("Date: ____________", "Date: ____________"),
        ],
        colWidths=[3.2 * inch, 3.2 * inch],
    )
    signatures.setStyle(TableStyle([("TOPPADDING", (0, 0), (-1, -1), 10)]))
    story.append(signatures)

    doc.build(story)
    return buf.getvalue()

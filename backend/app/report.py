from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import List
from uuid import uuid4

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from tourist_safety.models import Alert, Tourist

DEFAULT_INCIDENT_DESCRIPTION = "Tourist reported missing/in distress based on IoT monitoring data"


def efir_number() -> str:
    return f"FIR-{uuid4().hex[:12].upper()}"


def build_efir_pdf(
    tourist: Tourist,
    alerts: List[Alert],
    officer: str,
    incident_type: str = "Missing Person",
    description: str = "",
) -> bytes:
    """Render an Electronic First Information Report for one tourist."""
    buff = io.BytesIO()
    pdf = canvas.Canvas(buff, pagesize=A4)
    width, height = A4
    margin = 50
    generated = datetime.now(timezone.utc)

    y = height - 60
    pdf.setFont("Helvetica-Bold", 16)
    pdf.drawCentredString(width / 2, y, "ELECTRONIC FIRST INFORMATION REPORT (E-FIR)")
    y -= 20
    pdf.setFont("Helvetica", 12)
    pdf.drawCentredString(width / 2, y, "Tourist Safety Monitoring System")
    y -= 14
    pdf.setStrokeColor(colors.darkblue)
    pdf.line(margin, y, width - margin, y)
    y -= 24

    pdf.setFont("Helvetica", 10)
    pdf.drawString(margin, y, f"FIR No.: {efir_number()}")
    pdf.drawRightString(width - margin, y, f"Date: {generated:%Y-%m-%d %H:%M} UTC")
    y -= 14
    pdf.drawString(margin, y, f"Reporting Officer: {officer}")
    y -= 26

    def new_page_below(limit: float) -> None:
        nonlocal y
        if y < limit:
            pdf.showPage()
            pdf.setFont("Helvetica", 10)
            y = height - 60

    def section(title: str, lines: List[str]) -> None:
        nonlocal y
        new_page_below(140)
        pdf.setFont("Helvetica-Bold", 12)
        pdf.drawString(margin, y, title)
        y -= 16
        pdf.setFont("Helvetica", 10)
        for line in lines:
            for wrapped in simpleSplit(line, "Helvetica", 10, width - 2 * margin):
                new_page_below(60)
                pdf.drawString(margin, y, wrapped)
                y -= 13
        y -= 10

    loc = tourist.last_location
    section(
        "TOURIST INFORMATION:",
        [
            f"Name: {tourist.name}",
            f"Passport: {tourist.passport}",
            f"Last Known Location: {loc.latitude:.4f}, {loc.longitude:.4f}",
            f"Last Seen: {tourist.last_seen:%Y-%m-%d %H:%M}",
            f"Safety Score: {tourist.safety_score}% ({tourist.safety_status})",
        ],
    )
    section(
        "EMERGENCY CONTACTS:",
        [f"{c.name}: {c.phone}" for c in tourist.emergency_contacts] or ["None on record"],
    )
    section(
        "INCIDENT DETAILS:",
        [
            f"Incident Type: {incident_type}",
            f"Description: {description or DEFAULT_INCIDENT_DESCRIPTION}",
        ],
    )
    if tourist.iot_band:
        band = tourist.iot_band
        section(
            "IOT BAND DATA:",
            [
                f"Last Signal: {band.last_signal:%Y-%m-%d %H:%M}",
                f"Battery Level: {band.battery}%",
                f"Heart Rate: {band.heart_rate} BPM",
            ],
        )
    if alerts:
        section(
            "ALERT HISTORY:",
            [f"{a.created_at:%Y-%m-%d %H:%M} | {a.category} | {a.status.value} | {a.description}" for a in alerts],
        )
    section("KYC RECORD:", [f"KYC Hash: {tourist.kyc_hash or 'N/A'}"])

    pdf.setFont("Helvetica", 10)
    pdf.drawString(margin, max(y, 80), "Digital Signature: _________________________")
    pdf.setFont("Helvetica", 8)
    pdf.drawCentredString(
        width / 2, 30, "This is a computer generated document from the Smart Tourist Safety Monitoring System"
    )

    pdf.save()
    buff.seek(0)
    return buff.read()

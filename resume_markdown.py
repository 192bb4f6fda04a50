"""Assemble the resume builder form into a single markdown document."""
from typing import List, Optional

from schemas import ContactInfo, ResumeEntry, ResumeForm


def entries_to_markdown(entries: List[ResumeEntry], heading: str) -> str:
    if not entries:
        return ""

    blocks = []
    for entry in entries:
        end = "Present" if entry.current else entry.end_date
        blocks.append(
            f"### {entry.title} @ {entry.organization}\n"
            f"{entry.start_date} - {end}\n\n"
            f"{entry.description}"
        )
    return f"## {heading}\n\n" + "\n\n".join(blocks)


def contact_markdown(contact: ContactInfo, full_name: Optional[str]) -> str:
    parts = []
    if contact.email:
        parts.append(f"📧 {contact.email}")
    if contact.mobile:
        parts.append(f"📱 {contact.mobile}")
    if contact.linkedin:
        parts.append(f"💼 [LinkedIn]({contact.linkedin})")
    if contact.twitter:
        parts.append(f"🐦 [Twitter]({contact.twitter})")

    if not parts:
        return ""
    return (
        f'## <div align="center">{full_name or ""}</div>\n\n'
        f'<div align="center">\n\n{" | ".join(parts)}\n\n</div>'
    )


def build_resume_markdown(form: ResumeForm, full_name: Optional[str] = None) -> str:
    """Join the non-empty sections; empty sections get no heading at all."""
    sections = [
        contact_markdown(form.contact_info, full_name),
        f"## Professional Summary\n\n{form.summary}" if form.summary else "",
        f"## Skills\n\n{form.skills}" if form.skills else "",
        entries_to_markdown(form.experience, "Work Experience"),
        entries_to_markdown(form.education, "Education"),
        entries_to_markdown(form.projects, "Projects"),
    ]
    return "\n\n".join(section for section in sections if section)

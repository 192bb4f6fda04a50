import pytest
from pydantic import ValidationError

from resume_markdown import build_resume_markdown, contact_markdown, entries_to_markdown
from schemas import ContactInfo, ResumeEntry, ResumeForm


def test_summary_only_resume_has_no_empty_sections():
    markdown = build_resume_markdown(ResumeForm(summary="Backend engineer."))

    assert markdown == "## Professional Summary\n\nBackend engineer."
    assert "## Work Experience" not in markdown
    assert "## Skills" not in markdown


def test_empty_form_builds_empty_document():
    assert build_resume_markdown(ResumeForm()) == ""


def test_sections_are_joined_in_order():
    form = ResumeForm(
        contact_info=ContactInfo(email="ada@example.com", linkedin="https://linkedin.com/in/ada"),
        summary="Engineer.",
        skills="Python, SQL",
        experience=[
            ResumeEntry(
                title="Engineer",
                organization="Acme",
                start_date="Jan 2020",
                description="Built pipelines.",
                current=True,
            )
        ],
        education=[
            ResumeEntry(
                title="BSc Computer Science",
                organization="State University",
                start_date="2015",
                end_date="2019",
                description="Graduated with honours.",
            )
        ],
    )
    markdown = build_resume_markdown(form, full_name="Ada Lovelace")

    order = [
        markdown.index("Ada Lovelace"),
        markdown.index("## Professional Summary"),
        markdown.index("## Skills"),
        markdown.index("## Work Experience"),
        markdown.index("## Education"),
    ]
    assert order == sorted(order)
    assert "## Projects" not in markdown
    assert "### Engineer @ Acme\nJan 2020 - Present" in markdown
    assert "2015 - 2019" in markdown


def test_contact_parts_are_pipe_separated():
    markdown = contact_markdown(ContactInfo(email="ada@example.com", mobile="+1 555 0100"), "Ada")

    assert "📧 ada@example.com | 📱 +1 555 0100" in markdown
    assert '<div align="center">' in markdown


def test_contact_without_details_is_omitted():
    assert contact_markdown(ContactInfo(), "Ada") == ""


def test_entries_to_markdown_empty():
    assert entries_to_markdown([], "Projects") == ""


def test_entry_requires_end_date_unless_current():
    with pytest.raises(ValidationError):
        ResumeEntry(title="Engineer", organization="Acme", start_date="2020", description="Work.")

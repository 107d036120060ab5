"""
Report Generation Service
=========================
Registry of report generators keyed by output format.

    service = ReportGenerationService()
    data = service.generate_report(inspection, ReportOptions(format="docx"))
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from core.exceptions import InvalidInputError, ReportGenerationError
from core.models import Inspection
from core.settings import Settings
from reports.excel_generator import generate_excel_report
from reports.html_report import render_html_report
from reports.report_utils import LANGUAGES, VARIANT_POLICIES, PhotoResolver
from reports.word_generator import generate_word_report, word_report_bytes

logger = logging.getLogger(__name__)

TEMPLATES = ("standard", "detailed", "summary")


@dataclass
class ReportOptions:
    format: str = "html"
    template: str = "standard"
    include_photos: bool = True
    language: str = "bilingual"
    variant: str = "bilingual"

    def __post_init__(self):
        # format is a registry key; the service rejects unknown ones
        if not isinstance(self.format, str) or not self.format:
            raise InvalidInputError("Report format must be a non-empty string")
        for name, value, allowed in [
            ("template", self.template, TEMPLATES),
            ("language", self.language, LANGUAGES),
            ("variant", self.variant, tuple(VARIANT_POLICIES)),
        ]:
            if value not in allowed:
                raise InvalidInputError(f"Invalid report {name} {value!r}; expected one of {allowed}")

    @property
    def include_findings(self) -> bool:
        return self.template != "summary"


class ReportGenerator:
    """Base class for a single output format"""

    def __init__(self, settings: Optional[Settings] = None,
                 photo_resolver: Optional[PhotoResolver] = None):
        self.settings = settings
        self.photo_resolver = photo_resolver

    def generate(self, inspection: Inspection, options: ReportOptions) -> bytes:
        raise NotImplementedError


class HtmlGenerator(ReportGenerator):
    def generate(self, inspection: Inspection, options: ReportOptions) -> bytes:
        html = render_html_report(
            inspection,
            variant=options.variant,
            include_photos=options.include_photos,
            language=options.language,
            include_findings=options.include_findings,
            settings=self.settings,
            photo_resolver=self.photo_resolver,
        )
        return html.encode("utf-8")


class WordGenerator(ReportGenerator):
    def generate(self, inspection: Inspection, options: ReportOptions) -> bytes:
        doc = generate_word_report(
            inspection,
            variant=options.variant,
            include_photos=options.include_photos,
            include_findings=options.include_findings,
            settings=self.settings,
            photo_resolver=self.photo_resolver,
        )
        return word_report_bytes(doc)


class ExcelGenerator(ReportGenerator):
    def generate(self, inspection: Inspection, options: ReportOptions) -> bytes:
        buffer = generate_excel_report(
            inspection,
            variant=options.variant,
            include_findings=options.include_findings,
            settings=self.settings,
            photo_resolver=self.photo_resolver,
        )
        return buffer.getvalue()


class ReportGenerationService:
    """Looks up the generator for a format and runs it"""

    def __init__(self, settings: Optional[Settings] = None,
                 photo_resolver: Optional[PhotoResolver] = None):
        self.generators: Dict[str, ReportGenerator] = {}
        self.register_generator("html", HtmlGenerator(settings, photo_resolver))
        self.register_generator("docx", WordGenerator(settings, photo_resolver))
        self.register_generator("xlsx", ExcelGenerator(settings, photo_resolver))

    def register_generator(self, name: str, generator: ReportGenerator) -> None:
        self.generators[name] = generator
        logger.debug(f"Registered report generator: {name}")

    def get_available_generators(self) -> List[str]:
        return list(self.generators)

    def get_generator(self, name: str) -> ReportGenerator:
        generator = self.generators.get(name)
        if generator is None:
            raise ReportGenerationError(f"Report generator not found: {name}")
        return generator

    def generate_report(self, inspection: Inspection,
                        options: Optional[ReportOptions] = None) -> bytes:
        """
        Render an inspection in the requested format

        Args:
            inspection: Inspection to report on
            options: Output format, template, language and variant

        Returns:
            bytes: The rendered document
        """
        options = options or ReportOptions()
        generator = self.get_generator(options.format)
        data = generator.generate(inspection, options)
        logger.info(
            f"📄 Generated {options.format} report for {inspection.id or 'draft'} "
            f"({options.template}, {len(data):,} bytes)"
        )
        return data

"""
Parse a resolved one-click manifest into a Bundle.
"""

import logging
from typing import Any, Dict

from pydantic import ValidationError

from ..errors import ManifestParseError
from .models import Bundle, ServiceSpec
from .variables import declared_variables, load_document

logger = logging.getLogger(__name__)


class ManifestParser:
    """
    Build a Bundle from resolved manifest text.

    Dependency closure is not checked here; a depends_on naming an
    unknown service surfaces later as a stalled deployment.
    """

    def parse(self, document_text: str) -> Bundle:
        document = load_document(document_text)

        raw_services = document.get("services")
        if not isinstance(raw_services, dict) or not raw_services:
            raise ManifestParseError("Manifest must declare at least one service under 'services'")

        services: Dict[str, ServiceSpec] = {}
        for name, raw in raw_services.items():
            services[str(name)] = self._parse_service(str(name), raw)

        required_variables = declared_variables(document)
        block = document.get("caproverOneClickApp") or {}
        instructions = block.get("instructions") or {}
        if not isinstance(instructions, dict):
            instructions = {}

        bundle = Bundle(
            services=services,
            required_variables=required_variables,
            display_name=block.get("displayName"),
            instructions_start=instructions.get("start"),
            instructions_end=instructions.get("end"),
        )
        logger.debug(f"Parsed bundle with services: {', '.join(services)}")
        return bundle

    @staticmethod
    def _parse_service(name: str, raw: Any) -> ServiceSpec:
        if not isinstance(raw, dict):
            raise ManifestParseError(f"Service {name} must be a mapping")
        try:
            return ServiceSpec.model_validate({**raw, "name": name})
        except ValidationError as e:
            raise ManifestParseError(f"Invalid service {name}: {e}") from e

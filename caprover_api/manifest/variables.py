"""
Placeholder resolution for one-click app manifests.

Resolution runs in a fixed order: random hex tokens are expanded first,
then reserved names and caller values are collected, declared variables
fall back to their defaults, and finally every token is substituted in
a single pass.
"""

import logging
import re
import secrets
from typing import Any, Dict, List, Mapping, Optional, Pattern

import yaml
from pydantic import ValidationError

from ..config import DeploymentContext
from ..errors import InvalidVariableError, ManifestParseError, MissingVariableError
from .models import ManifestVariable

logger = logging.getLogger(__name__)

RANDOM_HEX_PATTERN = re.compile(r"\$\$cap_gen_random_hex\((\d+)\)")
APP_NAME_TOKEN = "$$cap_appname"
ROOT_DOMAIN_TOKEN = "$$cap_root_domain"
VARIABLE_PREFIX = "$$cap_"

_JS_REGEX_LITERAL = re.compile(r"/(.*)/([a-z]*)", re.DOTALL)
_JS_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


def generate_random_hex(length: int) -> str:
    return secrets.token_hex((length + 1) // 2)[:length]


def expand_random_hex(text: str) -> str:
    """Replace each $$cap_gen_random_hex(N) with its own fresh value."""
    return RANDOM_HEX_PATTERN.sub(lambda m: generate_random_hex(int(m.group(1))), text)


def variable_token(name: str) -> str:
    """Map "db_pass" to "$$cap_db_pass"; full tokens pass through."""
    return name if name.startswith(VARIABLE_PREFIX) else VARIABLE_PREFIX + name


def load_document(text: str) -> Dict[str, Any]:
    """
    Load manifest YAML keeping every scalar as its literal text.

    Generated secrets such as "0012ab" must not turn into numbers.
    """
    try:
        document = yaml.load(text, Loader=yaml.BaseLoader)
    except yaml.YAMLError as e:
        raise ManifestParseError(f"Manifest is not valid YAML: {e}") from e
    if not isinstance(document, dict):
        raise ManifestParseError("Manifest must be a mapping at the top level")
    return document


def declared_variables(document: Mapping[str, Any]) -> List[ManifestVariable]:
    """Read caproverOneClickApp.variables from a loaded manifest."""
    block = document.get("caproverOneClickApp") or {}
    if not isinstance(block, dict):
        raise ManifestParseError("caproverOneClickApp must be a mapping")
    raw_variables = block.get("variables") or []
    if not isinstance(raw_variables, list):
        raise ManifestParseError("caproverOneClickApp.variables must be a list")

    variables = []
    for raw in raw_variables:
        try:
            variables.append(ManifestVariable.model_validate(raw))
        except ValidationError as e:
            raise ManifestParseError(f"Invalid variable declaration {raw!r}: {e}") from e
    return variables


def compile_valid_regex(pattern: str) -> Pattern:
    """Accept both JS literals ("/^\\d+$/i") and bare patterns."""
    match = _JS_REGEX_LITERAL.fullmatch(pattern)
    if not match:
        return re.compile(pattern)
    flags = 0
    for flag in match.group(2):
        flags |= _JS_FLAGS.get(flag, 0)
    return re.compile(match.group(1), flags)


def substitute(text: str, values: Mapping[str, str]) -> str:
    """
    Replace every token in one pass.

    Longer tokens are tried first so a token never clobbers a longer one
    it prefixes. Substituted values are not scanned again.
    """
    if not values:
        return text
    tokens = sorted(values, key=len, reverse=True)
    pattern = re.compile("|".join(re.escape(token) for token in tokens))
    return pattern.sub(lambda m: values[m.group(0)], text)


class VariableResolver:
    """Turns a raw manifest into a fully substituted document."""

    def __init__(self, context: DeploymentContext):
        self.context = context

    def resolve(self, raw_manifest: str, app_name: str, variables: Optional[Mapping[str, Any]] = None) -> str:
        """
        Args:
            raw_manifest: Manifest text as fetched
            app_name: Instance name, substituted for $$cap_appname
            variables: Caller values keyed by token ("$$cap_x") or bare name ("x")

        Returns:
            Substituted manifest text

        Raises:
            MissingVariableError: A declared variable has no value and no default
            InvalidVariableError: A value does not match its validRegex
            ManifestParseError: The manifest cannot be loaded
        """
        if not self.context.root_domain:
            raise RuntimeError("root domain unknown: connect() must run before resolving manifests")

        text = expand_random_hex(raw_manifest)

        values: Dict[str, str] = {
            variable_token(key): str(value) for key, value in (variables or {}).items() if key and value is not None
        }
        values[APP_NAME_TOKEN] = app_name
        values[ROOT_DOMAIN_TOKEN] = self.context.root_domain

        for variable in declared_variables(load_document(text)):
            if variable.id not in values:
                if variable.default_value is None:
                    raise MissingVariableError(variable.id, variable.label, variable.description)
                logger.debug(f"Using default for {variable.id}")
                values[variable.id] = variable.default_value

            if variable.valid_regex:
                self._check_valid(variable, values[variable.id])

        return substitute(text, values)

    @staticmethod
    def _check_valid(variable: ManifestVariable, value: str) -> None:
        try:
            pattern = compile_valid_regex(variable.valid_regex)
        except re.error as e:
            logger.warning(f"Skipping validRegex for {variable.id}: {e}")
            return
        if not pattern.search(value):
            raise InvalidVariableError(variable.id, value, variable.valid_regex)

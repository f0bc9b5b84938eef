"""
Base prompt template class.
"""

import re
from dataclasses import dataclass

_PLACEHOLDER = re.compile(r"\{([a-z_][a-z0-9_]*)\}")


@dataclass
class PromptTemplate:
    """
    A prompt template with {placeholders}.

    Only lowercase identifiers in braces are substituted, so templates can
    carry literal JSON or code braces without escaping.

    Usage:
        template = PromptTemplate(template="Hello {name}!", description="A greeting")
        result = template.format(name="World")
    """
    template: str
    description: str = ""

    def format(self, **kwargs) -> str:
        """Substitute provided values; unknown placeholders are left as-is."""
        def substitute(match: "re.Match[str]") -> str:
            key = match.group(1)
            return str(kwargs[key]) if key in kwargs else match.group(0)

        return _PLACEHOLDER.sub(substitute, self.template)

    def __str__(self) -> str:
        return f"PromptTemplate({self.description})"

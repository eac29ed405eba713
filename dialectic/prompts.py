"""Role-specific prompt strategies built from the templates in settings.yaml."""

import logging

from config.config_loader import DEFAULT_ROLE, PromptsConfig, RolePromptTemplates
from dialectic.context import prepend_context
from dialectic.models import DebateContext

logger = logging.getLogger(__name__)

# Keys of prompts.shared in settings.yaml
SHARED_SYSTEM = "system"
SHARED_PROPOSAL = "proposal"
SHARED_CRITIQUE = "critique"
SHARED_REFINEMENT = "refinement"
SHARED_SUMMARIZATION = "summarization"
SHARED_CLARIFICATION = "clarification"


class RolePrompts:
    """Renders every prompt one role needs. Agents hold one of these rather than subclassing."""

    def __init__(self, role: str, templates: RolePromptTemplates, shared: dict[str, str]) -> None:
        self.role = role
        self._templates = templates
        self._shared = shared

    def _with_shared(self, prompt: str, kind: str) -> str:
        appendix = self._shared.get(kind, "").strip()
        if not appendix:
            return prompt
        return f"{prompt.rstrip()}\n\n{appendix}\n"

    def system_prompt(self) -> str:
        return self._with_shared(self._templates.system, SHARED_SYSTEM)

    def propose(
        self,
        problem: str,
        context: DebateContext | None,
        agent_id: str,
        include_full_history: bool = True,
    ) -> str:
        prompt = self._templates.propose.format(problem=problem)
        prompt = prepend_context(prompt, context, agent_id, include_full_history)
        return self._with_shared(prompt, SHARED_PROPOSAL)

    def critique(
        self,
        proposal: str,
        context: DebateContext | None,
        agent_id: str,
        include_full_history: bool = True,
    ) -> str:
        prompt = self._templates.critique.format(proposal=proposal)
        prompt = prepend_context(prompt, context, agent_id, include_full_history)
        return self._with_shared(prompt, SHARED_CRITIQUE)

    def refine(
        self,
        original: str,
        critiques: str,
        context: DebateContext | None,
        agent_id: str,
        include_full_history: bool = True,
    ) -> str:
        prompt = self._templates.refine.format(original=original, critiques=critiques)
        prompt = prepend_context(prompt, context, agent_id, include_full_history)
        return self._with_shared(prompt, SHARED_REFINEMENT)

    def summarize(self, content: str, max_length: int, template: str | None = None) -> str:
        """Render the summarization prompt; template overrides the role's own."""
        prompt = (template or self._templates.summarize).format(content=content, max_length=max_length)
        return self._with_shared(prompt, SHARED_SUMMARIZATION)

    def clarify(
        self,
        problem: str,
        context: DebateContext | None,
        agent_id: str,
        include_full_history: bool = True,
    ) -> str:
        prompt = self._templates.clarify.format(problem=problem)
        prompt = prepend_context(prompt, context, agent_id, include_full_history)
        return self._with_shared(prompt, SHARED_CLARIFICATION)


def role_prompts_for(role: str, prompts: PromptsConfig) -> RolePrompts:
    """Look up a role's templates, falling back to the architect role."""
    templates = prompts.roles.get(role)
    if templates is None:
        logger.warning("Unknown role '%s', using '%s' prompts", role, DEFAULT_ROLE)
        templates = prompts.roles[DEFAULT_ROLE]
    return RolePrompts(role, templates, prompts.shared)

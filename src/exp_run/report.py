"""Read-only summary of the current session, rendered with Jinja2."""

from typing import Any, Dict

from jinja2 import Environment, StrictUndefined

from .state import ExperimentSession

DETAILS_TEMPLATE = """\
Server URL:          {{ server.url or "not set" }}
Server redirect:     {{ server.redirect if server.redirect is not none else "not set" }}
Beacon URL:          {{ beacon.url or "not set" }}
Beacon redirect:     {{ beacon.redirect if beacon.redirect is not none else "not set" }}
Experiment range:    {{ exp_range.numbers | join(",") if exp_range.numbers else "not set" }}
{% if exp_range.numbers %}
Keep first position: {{ "yes" if exp_range.pin_first else "no" }}
{% endif %}
User email address:  {{ user.email or "not set" }}
User order:          {{ user.order | join(",") if user.order else "not set" }}
{% if user.order %}
Next experiment:     {{ user.exp_index + 1 }} of {{ user.order | length }} (condition {{ user.order[user.exp_index] }})
{% endif %}
Save directory:      {{ save_dir or "not set" }}
"""

_env = Environment(trim_blocks=True, keep_trailing_newline=False, undefined=StrictUndefined)
_template = _env.from_string(DETAILS_TEMPLATE)


def session_details(session: ExperimentSession) -> Dict[str, Any]:
    spec = session.range.current()
    exp_index = session.exp_index if session.exp_index < len(session.user.sequence) else 0
    return {
        "server": {"url": session.server.url, "redirect": session.server.redirect_slot},
        "beacon": {"url": session.beacon.url, "redirect": session.beacon.redirect_slot},
        "exp_range": {"numbers": list(spec.values), "pin_first": spec.pin_first},
        "user": {"email": session.user.email, "order": session.user.sequence, "exp_index": exp_index},
        "save_dir": str(session.save_dir.path) if session.save_dir.path else None,
    }


def render_details(session: ExperimentSession) -> str:
    return _template.render(**session_details(session)).rstrip("\n")

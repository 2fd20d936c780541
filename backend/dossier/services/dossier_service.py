"""
Dossier rendering.

Turns a completed submission into the "Pre-Call Dossier" as Markdown, the
document a consultant reads before the discovery call.
"""

import json

from jinja2 import Environment, StrictUndefined

from ..models import SubmissionRecord
from .status_protocol import SubmissionStatus, client_message


class DossierNotReady(Exception):
    """The submission has no completed analysis to render."""

    def __init__(self, status: SubmissionStatus):
        self.status = status
        super().__init__(client_message(status) or f"Analysis is {status.value}")


DOSSIER_TEMPLATE = """\
# Pre-Call Dossier

**Candidate:** {{ candidate }}{% if s.company_name %} ({{ s.company_name }}){% endif %}

## Fit Score

**{{ a.estimated_fit_score }}** / 100

## Psychological Profile

> {{ a.client_psychology }}

## Key Signals

### Red Flags
{% for flag in a.red_flags %}
- {{ flag }}
{%- else %}
- None detected.
{%- endfor %}

### Green Flags
{% for flag in a.green_flags %}
- {{ flag }}
{%- else %}
- None detected.
{%- endfor %}

## Executive Summary

{{ a.executive_summary }}

- Current: {{ s.current_revenue or "n/a" }}
- Goal: {{ s.revenue_goal or s.desired_outcome or "n/a" }}
{%- if s.commitment_level %}
- Commitment: {{ s.commitment_level }}/10
{%- endif %}
{%- if s.average_deal_size %}
- Deal Size: {{ s.average_deal_size }}
{%- endif %}

## The Pitch Angle

{{ a.closing_strategy }}

## Operational Gap Analysis

{{ a.operational_gap_analysis }}

## Strategic Questions
{% for question in a.strategic_questions %}
{{ loop.index }}. {{ question }}
{%- endfor %}

## Raw Submission Data

```json
{{ raw }}
```
"""

_env = Environment(undefined=StrictUndefined, keep_trailing_newline=True)
_template = _env.from_string(DOSSIER_TEMPLATE)


def render_dossier(record: SubmissionRecord) -> str:
    """
    Render the dossier for a completed record.

    Raises:
        DossierNotReady: The record is not completed
    """
    if record.status != SubmissionStatus.COMPLETED or record.analysis is None:
        raise DossierNotReady(record.status)

    submission = record.submission
    return _template.render(
        candidate=submission.full_name or "Unknown",
        s=submission,
        a=record.analysis,
        raw=json.dumps(submission.to_wire(), indent=2, ensure_ascii=False),
    )

"""Pure text helpers: who a message is addressed to, and the code inside it.

A request looks like

    <@U024BE7LH>: `fmt.Println(1 + 1)`

or, for longer snippets,

    <@U024BE7LH>: ```for i := 0; i &lt; 3; i++ { fmt.Println(i) }```

Slack delivers message bodies HTML-escaped, so the snippet is unescaped
before it is returned.
"""

from __future__ import annotations

import html
import re

# Only a mention anchored at the very start counts. Slack may append a
# label to the mention (<@U123|alice>), which is not part of the identity.
REPLY_TO_PATTERN = re.compile(r"^<@([^>|]+)(?:\|[^>]*)?>:")

FENCE = "`"


def extract_reply_to_id(text: str) -> str | None:
    """Return the user ID the message is addressed to, or None."""
    match = REPLY_TO_PATTERN.match(text or "")
    if match is None:
        return None
    return match.group(1)


def _strip_mention(text: str, reply_to_id: str) -> str:
    prefix = re.compile(rf"^<@{re.escape(reply_to_id)}(?:\|[^>]*)?>:")
    return prefix.sub("", text, count=1)


def extract_code(text: str, reply_to_id: str) -> str | None:
    """Return the fenced snippet addressed to `reply_to_id`, or None.

    The remainder after the mention must start and end with a backtick.
    Backticks are trimmed symmetrically, so `x` and ```x``` both yield x.
    """
    body = _strip_mention(text or "", reply_to_id).strip()
    if not body.startswith(FENCE) or not body.endswith(FENCE):
        return None

    code = body.strip(FENCE)
    if not code:
        return None
    return html.unescape(code)  # e.g. "&lt;=" to "<="

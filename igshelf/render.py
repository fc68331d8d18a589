"""
Renders a stored timeline as a static HTML page (timeline.html) that
references the copied files in the content directory.
"""

import logging
from pathlib import Path

from jinja2 import Environment

from igshelf.exceptions import PersistenceError
from igshelf.models.config import CONTENT_DIR
from igshelf.models.media import Media, MediaType

log = logging.getLogger(__name__)

_jinja_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
_jinja_env.globals["MediaType"] = MediaType

TIMELINE_TEMPLATE = _jinja_env.from_string("""\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>
body { font-family: sans-serif; max-width: 640px; margin: 0 auto; }
article { border-bottom: 1px solid #ddd; padding: 1em 0; }
img, video { max-width: 100%; display: block; margin-bottom: .5em; }
.caption { white-space: pre-wrap; }
time { color: #888; font-size: .9em; }
</style>
</head>
<body>
<h1>{{ title }}</h1>
{% for post in posts %}
<article id="{{ post.id }}">
  {% for m in (post.children or [post]) %}
  {% if m.filename %}
  {% if m.type == MediaType.VIDEO %}
  <video controls preload="none"{% if m.thumbnail_filename %} poster="{{ content_dir }}/{{ m.thumbnail_filename }}"{% endif %}>
    <source src="{{ content_dir }}/{{ m.filename }}" type="video/mp4">
  </video>
  {% else %}
  <img src="{{ content_dir }}/{{ m.filename }}" alt="{{ post.caption }}" loading="lazy">
  {% endif %}
  {% endif %}
  {% endfor %}
  {% if post.caption %}<p class="caption">{{ post.caption }}</p>{% endif %}
  {% if post.taken_at %}<time datetime="{{ post.taken_at.isoformat() }}">{{ post.taken_at.strftime("%d %b %Y") }}</time>{% endif %}
  {% if post.permalink %} <a href="{{ post.permalink }}">permalink</a>{% endif %}
</article>
{% endfor %}
</body>
</html>
""")


def render_timeline(
    timeline: list[Media], output_path: Path, title: str = "Timeline"
) -> None:
    """Writes timeline.html with one article per post, newest first."""
    html = TIMELINE_TEMPLATE.render(
        title=title,
        posts=timeline,
        content_dir=CONTENT_DIR,
    )
    try:
        Path(output_path).write_text(html, encoding="utf-8")
    except OSError as e:
        raise PersistenceError(f"failed to write {output_path} on disk: {e}") from e
    log.debug(f"Rendered {len(timeline)} posts into {output_path}.")

"""Common literal values used across df12_posts.

These constants keep defaults and output filenames centralized so the
configuration layer, the pipeline stages and the tests import the same values
without drifting. Intended for internal use within the df12_posts package.

Examples
--------
>>> from df12_posts import _constants
>>> _constants.META_FILENAME_TEMPLATE.format(slug="hello-world")
'hello-world.meta.json'
>>> _constants.DEFAULT_WORDS_PER_MINUTE
200
"""

DEFAULT_WORDS_PER_MINUTE = 200
DEFAULT_EXCERPT_BUDGET = 200
DEFAULT_EXCERPT_MARKER = "<!-- more -->"
DEFAULT_PYGMENTS_STYLE = "monokai"
DEFAULT_LINE_NUMBER_EXEMPT = frozenset({"shellsession"})
DEFAULT_CARD_TIMEOUT = 3.0
DEFAULT_API_BASE = "https://api.github.com"
ADMONITION_KINDS = ("note", "tip", "important", "caution", "warning")
GITHUB_CARD_DIRECTIVE = "github"
HTML_FILENAME_TEMPLATE = "{slug}.html"
META_FILENAME_TEMPLATE = "{slug}.meta.json"
MAX_NESTING_DEPTH = 64

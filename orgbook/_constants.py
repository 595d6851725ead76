"""Common literal values used across orgbook.

These constants keep file names and limits centralized so the loader,
publishers, and tests can import the same values without drifting.

Examples
--------
>>> from orgbook import _constants
>>> _constants.CONFIG_FILENAME
'.org-publish.json'
>>> sorted(_constants.SOURCE_EXTENSIONS)
['.ipynb', '.md', '.org']
"""

CONFIG_FILENAME = ".org-publish.json"
YAML_CONFIG_FILENAME = "_config.yml"
TOC_FILENAME = "_toc.yml"
NOJEKYLL_FILENAME = ".nojekyll"
CNAME_FILENAME = "CNAME"
STATIC_DIRNAME = "_static"

INCLUDE_MAX_DEPTH = 10
SOURCE_EXTENSIONS = (".org", ".md", ".ipynb")
HIGHLIGHT_JS_VERSION = "11.9.0"

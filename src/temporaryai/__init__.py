"""
TemporaryAI - keeps an embedded chat service locked to its temporary mode.

The package holds the two toolkit-independent pieces of the desktop wrapper:
- A navigation policy engine that decides what every page navigation may do
- An encrypted cookie export/import container so sessions can be moved
  between machines without persisting chat history

Example usage:
    $ temporaryai check-url "https://chatgpt.com/c/abc"
    $ temporaryai export cookies.json --db cookies.db --password "$PW"
    $ temporaryai import cookies.json --db cookies.db --password "$PW"
"""

__version__ = "0.1.0"
__author__ = "TemporaryAI Contributors"

__all__ = [
    "__version__",
    "__author__",
]

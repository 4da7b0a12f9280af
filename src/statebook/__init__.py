"""statebook - compile literate document-state specs into pytest suites."""

__version__ = "0.1.0"

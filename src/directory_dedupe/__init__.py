"""Directory dedupe - duplicate detection and draft review for listing directories.

Scores submitted listings against existing entries with five independent
strategies and a geographic veto, then walks each submission through a
reviewer state machine that ends in approval, rejection or a merge.
"""

__version__ = "0.1.0"

# Lazy imports keep `import directory_dedupe` cheap for the CLI
def __getattr__(name: str):
    if name == "DirectoryService":
        from directory_dedupe.service import DirectoryService
        return DirectoryService
    if name == "DraftLifecycle":
        from directory_dedupe.workflow import DraftLifecycle
        return DraftLifecycle
    if name == "aggregate":
        from directory_dedupe.matching import aggregate
        return aggregate
    if name == "models":
        from directory_dedupe import models
        return models
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

"""Top-level package for fast-tts.

fast-tts converts text into speech audio through one of several cloud
text-to-speech providers. The main orchestration entry point is
`SynthesisOrchestrator`.
"""

from .orchestrator import SynthesisOrchestrator

__all__ = ["SynthesisOrchestrator", "__version__"]

__version__ = "0.3.0"

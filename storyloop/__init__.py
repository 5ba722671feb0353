"""storyloop: resumable dev/review automation for BMAD projects."""

__version__ = "0.1.0"

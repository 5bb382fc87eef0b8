"""RU: Оркестратор диаризации дикторов по сегментам длинной записи.

EN: Split-approach speaker diarization orchestrator.
"""

__version__ = "0.3.0"

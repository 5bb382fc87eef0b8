"""RU: Запуск внешних стадий и конвейер одного сегмента.

Сами алгоритмы (детекция речи, BIC, кластеризация, рескоринг, CV) живут во
внешних скриптах; здесь только их вызов и переходы состояний задачи.

EN: External stage invocation and the per-segment pipeline.

The algorithms themselves (speech detection, BIC, clustering, rescoring, CV)
live in external scripts; this package only invokes them and drives the job
state transitions.
"""

"""BizGenius: сервис генерации бизнес‑планов с помощью LLM.

Основные задачи пакета:
- Сборка промптов (system/user) по профилю бизнеса и по запросу на доработку плана.
- Вызов OpenAI‑совместимой модели и разбор ответа на разделы плана.
- Хранение планов, экспорт в текст и .docx, чат‑ассистент по бизнес‑вопросам.

Пакет включает FastAPI‑приложение, сервисы обработки (templates/parser/generator/
repository/export), инфраструктуру (db/settings/logging) и модели (ORM и Pydantic).
"""

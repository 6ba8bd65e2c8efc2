"""Training center operations: attendance ingestion pipeline.

Feature modules (attendance, students, tutoring, class_sessions) each keep a
domain model, a repository interface, a MySQL repository and a service; a
thin Flask controller layer sits on top.
"""

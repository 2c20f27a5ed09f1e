"""
Natours Backend: Pydantic Schemas
===================================

Request bodies are validated against the *Create models; failures surface
as RequestValidationError and are reported by the error layer as
"Invalid input data. ...". Responses are serialized with camelCase keys.
"""

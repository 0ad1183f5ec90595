from otrocoro_admin.models.document import StoredDocument

__all__ = ["StoredDocument"]

# Importing the models registers both tables on Base.metadata
from voicenotes.models.note import Note
from voicenotes.models.user import User

__all__ = ["Note", "User"]

"""
Utility modules

Note: To prevent circular import issues, we do not re-export high-level functions
like translate_file from file_utils here. Import them directly from their module:

    from src.utils.file_utils import translate_file

This keeps the dependency hierarchy one-way:
    core (chunking, protection, post_processing) → translator → file_utils
"""

__all__ = []

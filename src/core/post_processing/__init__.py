"""
Response cleanup and Markdown repair.
"""
from src.core.post_processing.code_detection import CodeLikelihoodClassifier, CodeDetectionDetails
from src.core.post_processing.response_normalizer import ResponseNormalizer, PostProcessingRule
from src.core.post_processing.markdown_post_processor import (
    MarkdownPostProcessor,
    MarkdownPostProcessOptions,
    detect_language,
)

__all__ = [
    'CodeLikelihoodClassifier',
    'CodeDetectionDetails',
    'ResponseNormalizer',
    'PostProcessingRule',
    'MarkdownPostProcessor',
    'MarkdownPostProcessOptions',
    'detect_language',
]

"""
FitLog - Parser Application

The PARSER APP turns transcribed speech into structured workout and meal records.

Responsibilities:
1. Building prompts from the transcript, saved templates, the previous entry and chat history
2. Calling the language model in JSON mode and classifying failures
3. Decoding model replies into validated domain records with timezone-safe dates
4. Answering questions about logged history with a bounded conversation window

Components:
- CompletionClient: OpenAI chat-completions wrapper with a typed error taxonomy
- FitnessLogService: parse/query pipeline used by the CLI and the API
- HistoryChat: session-owned Q&A chat over workout or meal history
- API Server / CLI: outer surfaces over the pipeline and the record store
"""

__version__ = "1.0.0"
__author__ = "FitLog"

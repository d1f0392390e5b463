"""
GPT CLI - chat with an OpenAI model from the command line.

Text can be chunked and embedded into JSON files; at chat time the chunks
most similar to each prompt are injected into the conversation as context.
"""

__version__ = "1.0.0"

"""
AI Components for the Card Query backend.

Card Query (Streamed Single-Shot LLM Calls)
   - Uses Gemini via the Google Gen AI SDK (google-genai), streaming mode
   - NOT an ADK agent - prompt in, text chunks out, best-effort JSON parsing
   - Located in: cardquery/agents/card_query/
"""

"""
AI agents for the TechDeck Academy tutoring pipeline.

This package contains the LLM-facing pieces of the pipeline:
- Prompt composer: uniform persona / context / instructions / format layout
- Providers + invocation: Gemini adapter and retrying invoker
- Response parser: model text to validated records
- Summarizer: memory compaction with truncation fallback
- Challenge, Feedback, Letter and Digest agents: end-to-end generation flows
"""

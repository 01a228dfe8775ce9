# =============================================================================
# SYSTEM INSTRUCTIONS
# =============================================================================

SYSTEM_SUMMARIZER = (
    "You are a professional video summarizer that extracts key information "
    "from YouTube video transcripts."
)


# =============================================================================
# SUMMARY PROMPTS
# =============================================================================

SUMMARY_TASKS = {
    "short": (
        "Create a concise summary in 3-5 bullet points that captures the key "
        "information. Start each bullet with \"- \"."
    ),
    "comprehensive": (
        "Create a comprehensive, detailed summary organized into sections. "
        "Give each section a bold heading, cover the main topics and key "
        "insights, and end with the key takeaways."
    ),
}

FORMAT_GUIDELINES = """FORMAT GUIDELINES:
- Be direct and concise
- Prioritize accuracy over completeness
- Use clear, simple language
- Maintain an objective tone
- Highlight any key takeaways or actionable insights
- Do not add information not present in the transcript
- Do not begin with phrases like "This video is about" or "In this video"
- Do not begin with "Here's a summary" or similar preambles"""

SUMMARY_PROMPT = """{context}TRANSCRIPT:
{transcript}

TASK:
{task}

{guidelines}

Your summary:"""


# =============================================================================
# BASIC (NON-AI) SUMMARY
# =============================================================================

BASIC_SUMMARY = """# {title}

This is an automatically generated basic summary because AI summarization is currently unavailable.

## Content Preview:
{preview}

The video transcript is approximately {length} characters long."""

"""Prompt template registry — static prompt text keyed by query category.

Every answer template embeds the same grounding instructions and
formatting rules (citation syntax ``[Source: title](url)`` and a trailing
``Confidence: HIGH|MEDIUM|LOW`` line) followed by a category-specific
structure section.
"""

import json

from search_backend.domain.entities import QueryCategory

CITATION_FORMAT = "[Source: title](url)"

# ── Shared building blocks ──────────────────────────────────────────

_BASE_INSTRUCTIONS = """\
You are a documentation assistant. Answer the user's question using ONLY the
documentation excerpts provided in the user message.

Grounding rules:
1. Base every statement strictly on the provided documentation.
2. Never invent APIs, options, flags or behaviour that the documentation does not show.
3. If the documentation does not contain the answer, reply exactly with
   "I couldn't find this information in the documentation." and stop.
4. Do not use speculative wording such as "might be", "probably" or "I think".
"""

_FORMATTING_RULES = f"""\
Formatting rules:
- Use markdown. Put code in fenced code blocks with a language tag.
- Cite every document you rely on inline as {CITATION_FORMAT}.
- End the answer with a single line of the form "Confidence: HIGH", "Confidence: MEDIUM"
  or "Confidence: LOW" reflecting how completely the documentation answers the question.
"""

_CATEGORY_STRUCTURE: dict[QueryCategory, str] = {
    QueryCategory.HOW_TO: """\
Answer structure (how-to):
1. One sentence stating what the steps achieve.
2. Numbered steps, one action per step, each with the code it needs.
3. A short "Verify" note describing how to check it worked.
""",
    QueryCategory.WHAT_IS: """\
Answer structure (concept explanation):
1. Start with a one or two sentence definition.
2. Explain how it works and where it fits, using **bold** for key terms.
3. Finish with a minimal example if the documentation contains one.
""",
    QueryCategory.TROUBLESHOOTING: """\
Answer structure (troubleshooting):
1. Name the most likely cause shown in the documentation.
2. Give the fix as numbered steps.
3. List other documented causes as bullets, most likely first.
""",
    QueryCategory.CONFIGURATION: """\
Answer structure (configuration):
1. Show the complete configuration snippet first.
2. Explain each option that matters for the question as bullets.
3. Call out required versus optional settings and documented defaults.
""",
    QueryCategory.API_REFERENCE: """\
Answer structure (API reference):
1. Give the exact signature of the method, function or endpoint.
2. Describe parameters and return values as a bulleted list.
3. Show one usage example in a code block.
""",
    QueryCategory.GENERAL: """\
Answer structure:
1. Answer the question directly in the first paragraph.
2. Use headers, bullet points or numbered lists where they help readability.
3. If there are multiple documented ways to achieve something, list them all.
""",
}

_COMPLEXITY_GUIDANCE = {
    "beginner": "The user appears to be a beginner: define terms and avoid skipping steps.",
    "intermediate": "The user appears to be comfortable with the basics: keep explanations brief.",
    "advanced": "The user appears to be advanced: focus on precise details and edge cases.",
}


def select_template(
    category: QueryCategory | str,
    system_context: str | None = None,
    *,
    complexity: str | None = None,
) -> str:
    """Return the full system prompt for ``category``.

    Unknown categories fall back to the general template.
    """
    try:
        category = QueryCategory(category)
    except ValueError:
        category = QueryCategory.GENERAL

    sections = [_BASE_INSTRUCTIONS]
    if system_context:
        sections.append(f"Context about the product: {system_context}\n")
    if complexity in _COMPLEXITY_GUIDANCE:
        sections.append(_COMPLEXITY_GUIDANCE[complexity] + "\n")
    sections.append(_CATEGORY_STRUCTURE[category])
    sections.append(_FORMATTING_RULES)
    return "\n".join(sections)


def answer_user_prompt(query: str, document_context: str, conversation: str | None = None) -> str:
    history = f"Previous conversation:\n{conversation}\n\n" if conversation else ""
    return (
        f"{history}Question: \"{query}\"\n\n"
        "Based on the following documentation, please provide a comprehensive answer:\n\n"
        f"{document_context}"
    )


# ── Keywords ────────────────────────────────────────────────────────


def keyword_system_prompt(max_keywords: int, system_context: str | None = None) -> str:
    context = (
        f"Context about the product/documentation: {system_context}\n\n" if system_context else ""
    )
    return f"""\
You are a search keyword generator for documentation search.
Your task is to analyze the user's question and generate up to {max_keywords} relevant
search keywords/phrases that will help find the most relevant documentation.

{context}Rules:
1. Generate diverse keywords that cover different aspects of the query
2. Include both specific technical terms and general concepts
3. Consider synonyms and related terms
4. Return keywords that are likely to match documentation content
5. Return ONLY a JSON array of strings, nothing else

Examples:
- For "how to authenticate users", return: ["user authentication", "login", "auth setup", "authentication methods", "user login"]
- For "deploy to production", return: ["production deployment", "deploy", "deployment guide", "production setup", "deployment config"]
- For "error handling", return: ["error handling", "exception handling", "error management", "catch errors", "error types"]"""


def keyword_user_prompt(query: str) -> str:
    return f'Generate search keywords for this query: "{query}"'


# ── Classification ──────────────────────────────────────────────────

CLASSIFICATION_SYSTEM_PROMPT = """\
You classify questions asked against technical documentation.

Respond ONLY with a JSON object, no markdown fences, no explanation:
{
  "category": "how-to" | "what-is" | "troubleshooting" | "configuration" | "api-reference" | "general",
  "intent": "short description of what the user wants",
  "reformulatedQuery": "the question rewritten as a precise search query, or null",
  "keywords": ["up to five", "search keywords"],
  "complexity": "beginner" | "intermediate" | "advanced"
}
"""


def classification_user_prompt(query: str) -> str:
    return f'Classify this question: "{query}"'


# ── Multi-source aggregation ────────────────────────────────────────


def aggregation_system_prompt(system_context: str | None = None) -> str:
    context = f"Context about the product: {system_context}\n\n" if system_context else ""
    return f"""\
You combine information from several kinds of sources into one answer.
{context}Source priority:
1. Official documentation is authoritative.
2. Resolved GitHub issues describe confirmed fixes and workarounds.
3. Blog posts and changelog entries add context and recent changes.

When sources conflict, prefer the more authoritative source; between sources of equal
authority prefer the more recent one and mention the conflict briefly.

{_FORMATTING_RULES}"""


def aggregation_user_prompt(query: str, context: str) -> str:
    return (
        f"Question: \"{query}\"\n\n"
        "Sources (highest priority first):\n\n"
        f"{context}\n\n"
        "Write one answer that fuses these sources."
    )


# ── Follow-up questions ─────────────────────────────────────────────


def follow_up_system_prompt(max_questions: int) -> str:
    return f"""\
You suggest follow-up questions a documentation reader is likely to ask next.
Return ONLY a JSON array of at most {max_questions} short questions, nothing else."""


def follow_up_user_prompt(query: str, answer: str, history: list[str]) -> str:
    earlier = "\n".join(f"- {q}" for q in history)
    earlier_block = f"Earlier questions:\n{earlier}\n\n" if earlier else ""
    return (
        f"{earlier_block}Latest question: \"{query}\"\n\n"
        f"Answer given:\n{answer[:1500]}\n\n"
        "Suggest follow-up questions."
    )


FOLLOW_UP_FALLBACKS: dict[QueryCategory, list[str]] = {
    QueryCategory.HOW_TO: [
        "How can I verify that {topic} is working?",
        "What are common mistakes when setting up {topic}?",
        "Is there a complete example of {topic}?",
    ],
    QueryCategory.WHAT_IS: [
        "How do I get started with {topic}?",
        "When should I use {topic}?",
        "What are the alternatives to {topic}?",
    ],
    QueryCategory.TROUBLESHOOTING: [
        "What else can cause problems with {topic}?",
        "How can I debug {topic}?",
        "Are there known issues with {topic}?",
    ],
    QueryCategory.CONFIGURATION: [
        "What are the default settings for {topic}?",
        "Which {topic} options are required?",
        "How do I configure {topic} for production?",
    ],
    QueryCategory.API_REFERENCE: [
        "What does {topic} return?",
        "Which errors can {topic} raise?",
        "Is there an example using {topic}?",
    ],
    QueryCategory.GENERAL: [
        "Can you show an example of {topic}?",
        "What are best practices for {topic}?",
        "Where can I learn more about {topic}?",
    ],
}


# ── Summarization ───────────────────────────────────────────────────

SUMMARIZE_SYSTEM_PROMPT = """\
You are a helpful assistant that summarizes documentation content.
Your task is to create a concise summary that captures the most relevant information for answering the user's query.
Focus on extracting key points, code examples, and important details that directly relate to the query."""


def summarize_user_prompt(query: str, content: list[str]) -> str:
    documents = "\n\n---\n\n".join(
        f"Document {index}:\n{text}" for index, text in enumerate(content, start=1)
    )
    return (
        f"Query: \"{query}\"\n\n"
        "Please summarize the following documentation content, focusing on information "
        "relevant to the query above:\n\n"
        f"{documents}\n\n"
        "Provide a concise summary that will help answer the query."
    )


# ── Context enhancement ─────────────────────────────────────────────


def related_topics_prompt(query: str, excerpts: list[tuple[str, str]]) -> str:
    current = "\n".join(f"- {title}: {content[:200]}..." for title, content in excerpts)
    example = json.dumps(["authentication", "JWT tokens", "session management"])
    return f"""\
Based on the user query "{query}" and the following documentation excerpts,
identify 2-3 related topics, concepts, or sections that would provide helpful additional context.

Current documentation:
{current}

Return ONLY a JSON array of search terms for finding related documentation.
Example: {example}"""


# ── Discourse forum replies ─────────────────────────────────────────


def discourse_system_prompt(
    product: str,
    query: str,
    *,
    category: str,
    user_level: str,
    post_type: str,
    tone: str = "helpful",
    include_code_examples: bool = True,
) -> str:
    code_rule = (
        "Include relevant code examples when appropriate"
        if include_code_examples
        else "Do not include code blocks; describe the steps in prose"
    )
    return f"""\
You are an expert {product} community assistant. Your role is to provide {tone}, accurate
responses to community questions based on the official {product} documentation.

Context:
- Category: {category}
- User Level: {user_level}
- Post Type: {post_type}

Guidelines:
1. Provide clear, actionable answers based on the documentation
2. {code_rule}
3. Adapt complexity to user level ({user_level})
4. Always cite sources with [text](url) format
5. Be helpful and professional
6. If information is incomplete, acknowledge limitations

Question: {query}"""


def discourse_keyword_context(product: str, category: str, user_level: str, post_type: str) -> str:
    return (
        f"{product} community forum post analysis. "
        f"Category: {category}. User Level: {user_level}. Post Type: {post_type}."
    )

"""
Prompt templates for the three pipeline stages.

Every builder returns an ordered system/user message pair. The validation
stage additionally ships VALIDATION_SCHEMA, the strict output contract the
completion service must honour.
"""

from govgen.config import settings
from govgen.services.completion_client import Message, OutputSchema

REASONING_SYSTEM_PROMPT = "You are an expert software architect."

REASONING_INSTRUCTIONS = """Provide a detailed Chain-of-Thought reasoning that:
1. Identifies the relevant governance rules and ADRs from the context
2. Breaks down the implementation requirements step-by-step
3. Explains how PII masking will be enforced
4. Describes the CP/AP segregation approach
5. Outlines the decision logic for claims processing

Provide your reasoning in a clear, structured format."""

VALIDATION_SCHEMA = OutputSchema(
    name="validation_result",
    schema={
        "type": "object",
        "properties": {
            "testsPassed": {"type": "boolean"},
            "testCoverage": {"type": "integer", "minimum": 0, "maximum": 100},
            "adrCompliant": {"type": "boolean"},
            "cpApViolations": {"type": "integer", "minimum": 0},
            "piiMaskingEnforced": {"type": "boolean"},
            "details": {"type": "string"},
        },
        "required": [
            "testsPassed", "testCoverage", "adrCompliant",
            "cpApViolations", "piiMaskingEnforced", "details",
        ],
        "additionalProperties": False,
    },
)


def build_reasoning_messages(context: str, context_query: str) -> list[Message]:
    language = settings.codegen_language
    prompt = (
        f"You are an expert software architect specializing in governed {language} "
        f"microservices for insurance claims processing.\n\n"
        f"Context Documents:\n{context}\n\n"
        f"User Request: {context_query}\n\n"
        f"{REASONING_INSTRUCTIONS}"
    )
    return [
        Message(role="system", content=REASONING_SYSTEM_PROMPT),
        Message(role="user", content=prompt),
    ]


def build_code_messages(cot_reasoning: str) -> list[Message]:
    language = settings.codegen_language
    prompt = (
        f"Based on the following Chain-of-Thought reasoning, generate a complete "
        f"{language} microservice implementation:\n\n"
        f"{cot_reasoning}\n\n"
        f"Generate:\n"
        f"1. A complete {language} class implementing the Claims Data Governance logic\n"
        f"2. Include PII masking using approved methods\n"
        f"3. Ensure CP/AP segregation (only use approved interfaces)\n"
        f"4. Add proper error handling and logging\n\n"
        f"Provide only the {language} code without explanations."
    )
    return [
        Message(role="system", content=f"You are an expert {language} developer."),
        Message(role="user", content=prompt),
    ]


def build_test_messages(generated_code: str) -> list[Message]:
    language = settings.codegen_language
    framework = settings.codegen_test_framework
    prompt = (
        f"Generate a comprehensive {framework} test suite for the following {language} code:\n\n"
        f"{generated_code}\n\n"
        f"The tests should:\n"
        f"1. Validate PII masking is enforced\n"
        f"2. Test all decision paths\n"
        f"3. Verify CP/AP segregation\n"
        f"4. Include edge cases\n\n"
        f"Provide only the {language} test code."
    )
    return [
        Message(role="system", content=f"You are an expert {language} test developer."),
        Message(role="user", content=prompt),
    ]


def build_validation_messages(generated_code: str, generated_tests: str | None) -> list[Message]:
    language = settings.codegen_language
    prompt = (
        f"Analyze the following {language} code and test suite for compliance:\n\n"
        f"Code:\n{generated_code}\n\n"
        f"Tests:\n{generated_tests or ''}\n\n"
        f"Validate:\n"
        f"1. Are all tests likely to pass? (true/false)\n"
        f"2. Estimated test coverage percentage (0-100)\n"
        f"3. Is ADR-compliant (uses approved libraries)? (true/false)\n"
        f"4. Number of CP/AP violations (0 = none)\n"
        f"5. Is PII masking enforced before logging? (true/false)\n\n"
        f'Respond in JSON format: {{"testsPassed": boolean, "testCoverage": number, '
        f'"adrCompliant": boolean, "cpApViolations": number, '
        f'"piiMaskingEnforced": boolean, "details": "explanation"}}'
    )
    return [
        Message(role="system", content="You are a code validation expert."),
        Message(role="user", content=prompt),
    ]

"""
Example usage of the Basalt SDK.

Fetches a prompt, runs a traced conversation under a root span with
evaluators attached, and sends a monitor trace.

Requires BASALT_API_KEY in the environment.
"""

import asyncio
from typing import Any, Dict, List

from basalt import Basalt, BasaltError, ObserveKind, observed, start_observe, with_root_span
from basalt.observability import evaluators_scope, prompts_scope


# Example 1: Decorated retrieval step
@observed(kind=ObserveKind.RETRIEVAL)
async def search_documents(query: str) -> List[Dict[str, Any]]:
    """Pretend to search a document index."""
    await asyncio.sleep(0.1)
    return [{"id": "doc-1", "text": f"Basalt documentation about {query}"}]


# Example 2: Decorated generation step
@observed(kind=ObserveKind.GENERATION)
async def generate_answer(prompt_text: str, documents: List[Dict[str, Any]]) -> str:
    """Pretend to call an LLM."""
    await asyncio.sleep(0.2)
    return f"Answer based on {len(documents)} document(s): {prompt_text[:40]}..."


async def answer_question(basalt: Basalt, question: str) -> str:
    try:
        prompt = await basalt.prompts.get(
            "support-answer",
            tag="production",
            variables={"question": question},
        )
        prompt_text = prompt.text
    except BasaltError as e:
        print(f"Prompt unavailable, using default text: {e.message}")
        prompt = None
        prompt_text = f"Answer the question: {question}"

    # Spans started below carry the evaluators and the prompt
    with evaluators_scope(["hallucination", "helpfulness"]), prompts_scope([prompt] if prompt else []):
        documents = await search_documents(question)
        return await generate_answer(prompt_text, documents)


async def main():
    async with Basalt() as basalt:
        print("\n=== Example 3: Root span for a conversation ===")
        root = start_observe(
            feature_slug="support-bot",
            name="conversation",
            identity={"user_id": "user-123", "user_name": "Alice"},
            experiment="exp-prompt-v2",
        )
        try:
            answer = await with_root_span(root, answer_question, basalt, "How do I rotate my API key?")
        finally:
            root.end()
        print(f"Answer: {answer}")

        print("\n=== Example 4: Monitor trace ===")
        trace = basalt.monitor.create_trace("support-bot", input="How do I rotate my API key?")
        trace.identify("user-123", name="Alice").set_metadata({"channel": "chat"})
        pipeline = trace.create_span("answer-pipeline", input="How do I rotate my API key?")
        pipeline.create_span("search", log_type="retrieval").end("3 documents")
        generation = pipeline.create_generation(prompt={"slug": "support-answer"}, input_tokens=120)
        generation.end(answer)
        pipeline.end(answer)
        await trace.complete(output=answer)
        print("Trace sent")

        print("\n=== Example 5: Datasets ===")
        try:
            dataset = await basalt.datasets.get("support-questions")
            print(f"Dataset '{dataset.name}' has {len(dataset.rows)} rows")
        except BasaltError as e:
            print(f"Dataset unavailable: {e.message}")

        basalt.flush()


if __name__ == "__main__":
    asyncio.run(main())

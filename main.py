"""QueryLens - Research Orchestration

Simple CLI for running research queries.
"""

import argparse
import asyncio

from querylens.agents.orchestrator import ResearchOrchestrator
from querylens.models.research import DEFAULT_RELEVANCE_THRESHOLD, ResearchQuery
from querylens.services.progress_stream import ProgressStream


async def run_research(query: str, threshold: int, enable_formatting: bool):
    """Run research on the given query."""
    print(f"Research query: {query}")
    print("-" * 50)

    orchestrator = ResearchOrchestrator()
    request = ResearchQuery(
        text=query,
        relevance_threshold=threshold,
        enable_formatting=enable_formatting,
    )
    stream = ProgressStream(orchestrator.research(request))

    async for event in stream.frames():
        event_type = event.event.value
        data = event.data

        if event_type == "activity":
            print(f"  [~] {data.get('message', '')}")

        elif event_type == "analysis":
            sub_questions = data.get("subQuestions", [])
            print(f"\n[*] Research Questions ({len(sub_questions)}):")
            for i, question in enumerate(sub_questions, 1):
                print(f"  {i}. {question[:80]}")
            print()

        elif event_type == "complete":
            synthesis = data.get("synthesis", {})
            print(f"\n[*] Research Complete!")
            print(f"   Confidence: {synthesis.get('confidence')}")
            print(f"   Sources: {synthesis.get('totalSources')}")
            if "relevantFindings" in synthesis:
                print(
                    f"   Relevant findings: {synthesis.get('relevantFindings')} "
                    f"(filtered out {synthesis.get('filteredOutFindings')}, "
                    f"avg relevance {synthesis.get('averageRelevanceScore')})"
                )
            print(f"\n{'='*50}")
            print("ANSWER:")
            print(f"{'='*50}")
            print(synthesis.get("summary", ""))

        elif event_type == "error":
            print(f"\n[!] {data.get('message', 'Unknown error')}: {data.get('error', '')}")


def main():
    parser = argparse.ArgumentParser(description="QueryLens research orchestration")
    parser.add_argument("--query", "-q", required=True, help="Research query")
    parser.add_argument(
        "--threshold",
        "-t",
        type=int,
        default=DEFAULT_RELEVANCE_THRESHOLD,
        help=f"Relevance threshold 0-100 (default: {DEFAULT_RELEVANCE_THRESHOLD})",
    )
    parser.add_argument(
        "--no-formatting",
        action="store_true",
        help="Skip format detection and use plain synthesis",
    )

    args = parser.parse_args()

    asyncio.run(run_research(args.query, args.threshold, not args.no_formatting))


if __name__ == "__main__":
    main()

# run.py
# Entry point. Config and wiring only; no logic lives here.
#
# Settings come from the environment / .env (see config.py). Swap
# TOOL_AGENT_MODEL for any OpenRouter-supported model.
# https://openrouter.ai/models

from tool_agent.config import AgentConfig
from tool_agent.harness import Orchestrator
from tool_agent.tools import list_tools, tool_preset

# Demo tasks: one read-only exploration, one that needs a risky tool.
TASKS = [
    # Read-only: list → read chain, no approval needed
    ("List the Python files in this project and summarise what the largest one does.", "read_only"),

    # Risky: write_file is gated by the approval prompt in safe mode
    ("Write fib.py, a script that prints the first 15 Fibonacci numbers.", "code_generation"),

    # Memory: durable notes across tasks
    ("Save a short note called notes/fib.md describing how you computed Fibonacci numbers, "
     "then list the memory directory.", "all"),
]


def main() -> None:
    config = AgentConfig.from_env()
    orchestrator = Orchestrator(config)
    list_tools()

    for task, preset in TASKS:
        result = orchestrator.run(task, tools=tool_preset(preset))
        print(f"\n[RESULT:{result.state}]\n{result.final_response}\n")


if __name__ == "__main__":
    main()

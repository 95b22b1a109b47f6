from __future__ import annotations

import re
from typing import Literal

OutputStrategy = Literal["full", "minimal", "default"]

# Commands whose output is the answer the agent asked for.
OUTPUT_IS_RESULT_PATTERNS = tuple(
    re.compile(pattern)
    for pattern in (
        r"^git\s+(status|log|diff|show|branch|remote|config|rev-parse|ls-files|blame|describe|tag)",
        r"^(ls|dir|find|tree|exa|lsd)\b",
        r"^(cat|head|tail|grep|rg|ag|ack|sed|awk)\b",
        r"^(curl|wget|http|httpie)\b",
        r"^(echo|printf)\b",
        r"^(pwd|whoami|hostname|uname|id|groups)\b",
        r"^(env|printenv|set)\b",
        r"^(which|where|type|command)\b",
        r"^(jq|yq|xq)\b",
        r"^(wc|sort|uniq|cut|tr|column)\b",
        r"^(date|cal|uptime)\b",
        r"^(df|du|free|top|ps|lsof)\b",
        r"^(npm\s+(list|ls|outdated|view|info|search))\b",
        r"^(yarn\s+(list|info|why))\b",
        r"^(bun\s+(pm\s+ls|pm\s+cache))\b",
        r"^(cargo\s+(tree|metadata|search))\b",
        r"^(pip\s+(list|show|freeze))\b",
        r"^(docker\s+(ps|images|inspect|logs))\b",
    )
)

# Build and test runners: on success their logs are noise.
BUILD_TEST_PATTERNS = tuple(
    re.compile(pattern)
    for pattern in (
        r"^(npm|yarn|pnpm|bun)\s+(run\s+)?(test|build|lint|check|typecheck|tsc|compile)",
        r"^(cargo|rustc)\s+(test|build|check|clippy)",
        r"^(go)\s+(test|build|vet)",
        r"^(pytest|jest|vitest|mocha|ava|tap)\b",
        r"^(make|cmake|ninja)\b",
        r"^(tsc|eslint|prettier|biome)\b",
        r"^(gradle|mvn|ant)\b",
        r"^(dotnet)\s+(build|test|run)",
    )
)


def classify_output(command: str) -> OutputStrategy:
    normalized = command.strip()
    if any(pattern.search(normalized) for pattern in OUTPUT_IS_RESULT_PATTERNS):
        return "full"
    if any(pattern.search(normalized) for pattern in BUILD_TEST_PATTERNS):
        return "minimal"
    return "default"

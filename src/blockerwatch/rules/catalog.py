"""Built-in blocker signatures.

Order matters: the matcher returns the first signature that activates,
so narrower, higher-confidence signatures come before broad ones within
a category.
"""

from __future__ import annotations

from blockerwatch.domain.models import BlockerCategory, BlockerSignature

DEFAULT_SIGNATURES: tuple[BlockerSignature, ...] = (
    BlockerSignature(
        id="build-error-console",
        name="Build Error - Console Failure",
        category=BlockerCategory.BUILD_ERROR,
        signals=("error:", "failed"),
        confidence=0.95,
        min_duration_ms=3000,
    ),
    BlockerSignature(
        id="compilation-error",
        name="Compilation Error",
        category=BlockerCategory.BUILD_ERROR,
        signals=("compilation failed", "syntax error", "type error", "cannot compile"),
        confidence=0.90,
        min_duration_ms=2000,
    ),
    BlockerSignature(
        id="unhandled-exception",
        name="Unhandled Exception",
        category=BlockerCategory.BUILD_ERROR,
        signals=("exception", "traceback"),
        confidence=0.85,
        min_duration_ms=3000,
    ),
    BlockerSignature(
        id="timeout-stuck-process",
        name="Timeout - Long Running Process",
        category=BlockerCategory.TIMEOUT,
        signals=("process stuck", "no console output", "still running", "not responding"),
        confidence=0.85,
        min_duration_ms=60000,
    ),
    BlockerSignature(
        id="circular-dependency",
        name="Circular Dependency Detected",
        category=BlockerCategory.CIRCULAR_DEPENDENCY,
        signals=("circular reference", "cyclic", "cannot find", "module not found"),
        confidence=0.90,
        min_duration_ms=2000,
    ),
    BlockerSignature(
        id="permission-denied",
        name="Permission Error",
        category=BlockerCategory.PERMISSION,
        signals=("permission denied", "access denied", "unauthorized", "forbidden"),
        confidence=0.92,
        min_duration_ms=1000,
    ),
    BlockerSignature(
        id="out-of-memory",
        name="Out of Memory Error",
        category=BlockerCategory.RESOURCE_EXHAUSTION,
        signals=("out of memory", "heap space", "memory limit exceeded", "java.lang.OutOfMemoryError"),
        confidence=0.88,
        min_duration_ms=5000,
    ),
    BlockerSignature(
        id="network-timeout",
        name="Network Timeout",
        category=BlockerCategory.TIMEOUT,
        signals=("timeout", "connection refused", "network error", "ECONNREFUSED"),
        confidence=0.80,
        min_duration_ms=10000,
    ),
    BlockerSignature(
        id="disk-full",
        name="Disk Full Error",
        category=BlockerCategory.RESOURCE_EXHAUSTION,
        signals=("no space left", "disk full", "insufficient storage", "ENOSPC"),
        confidence=0.95,
        min_duration_ms=1000,
    ),
)

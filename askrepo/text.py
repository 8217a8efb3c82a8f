"""Centralized user-facing text for the askrepo CLI."""

from __future__ import annotations


class Styles:
    ERROR = "red"
    WARNING = "yellow"
    SUCCESS = "green"
    INFO = "dim"
    TABLE_HEADER = "bold magenta"


class Messages:
    APP_HELP = "askrepo – keyword search over a local source tree with IDF ranking."
    HELP_PATH = "Root directory of the corpus (defaults to $ASKREPO_ROOT or the current directory)."
    HELP_SETUP_FULL = "Ignore the previous index and rebuild every file from scratch."
    HELP_QUESTION = "Question or keywords to look up in the index."
    HELP_QUERY_STDIN = "Read a JSON payload such as {\"question\": \"...\"} from stdin."
    HELP_QUERY_TOP = "Number of sources to return (defaults to max_results from config)."
    HELP_FORMAT = "Output format: rich tables or the raw JSON tool result."
    HELP_VERBOSE = "Log progress to stderr."
    HELP_CONFIG_SHOW = "Show the effective configuration."
    HELP_CONFIG_SET = "Persist a KEY=VALUE setting in .askrepo/config.json."
    HELP_CONFIG_RESET = "Remove the stored configuration and fall back to defaults."

    ERROR_EMPTY_QUESTION = "input.question is required"
    ERROR_PAYLOAD_INVALID = "Query input must be a JSON object like {\"question\": \"...\"}."
    ERROR_PAYLOAD_JSON = "Query input is not valid JSON: {reason}"
    ERROR_TOP_INVALID = "top_k must be a positive integer"
    ERROR_CONFIG_JSON_INVALID = "Configuration must be a JSON object."
    ERROR_CONFIG_VALUE_INVALID = "Invalid value for configuration field '{field}'."
    ERROR_CONFIG_UNKNOWN_FIELD = "Unknown configuration field '{field}'."
    ERROR_CONFIG_OVERLAP = "chunk_overlap must be smaller than chunk_lines."
    ERROR_CONFIG_ASSIGNMENT = "Expected KEY=VALUE, got '{value}'."
    ERROR_INDEX_WRITE = "Could not write index to {path}: {reason}"

    ANSWER_NEEDS_SETUP = "Index not built. Run setup first: askrepo setup"
    ANSWER_NO_RESULTS = "No relevant code found for: {question}"
    ANSWER_FOUND = "Found {count} relevant excerpt{plural} for: {question}"
    ANSWER_STALE_SUFFIX = " ({count} from files changed since the last setup; re-run askrepo setup)"

    INFO_SETUP_DONE = (
        "{indexed} indexed, {skipped} skipped, {pruned} pruned; "
        "{total} total chunks ({size} KB) in {duration} ms."
    )
    INFO_SETUP_NOOP = "Index already matches the current directory; nothing to do."
    INFO_INDEX_SAVED = "Index saved to {path}."
    INFO_STATUS_MISSING = "No index found under {path}. Run `askrepo setup` first."
    INFO_STATUS_SUMMARY = (
        "Index version: {version}\n"
        "Generated at: {generated}\n"
        "Files tracked: {files}\n"
        "Chunks: {chunks}\n"
        "Distinct tokens: {tokens}\n"
        "IDF weighting: {idf}"
    )
    INFO_CONFIG_SAVED = "Configuration saved to {path}."
    INFO_CONFIG_RESET = "Configuration reset to defaults."

    TABLE_TITLE = "askrepo results"
    TABLE_HEADER_INDEX = "#"
    TABLE_HEADER_SCORE = "Score"
    TABLE_HEADER_PATH = "File path"
    TABLE_HEADER_LINES = "Lines"
    TABLE_HEADER_EXCERPT = "Excerpt"
    TABLE_HEADER_STALE = "Fresh"

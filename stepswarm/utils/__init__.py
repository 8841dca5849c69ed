# Copyright 2025 GlyphyAI
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from .function import function_to_json
from .logging import disable_logging, enable_logging, log_verbose
from .messages import dump_messages, merge_delta, message_from_delta
from .misc import dedent_prompt, unwrap_instructions
from .retry import retry_with_exponential_backoff
from .steps import extract_step_program, parse_steps, strip_step_program

__all__ = [
    "dedent_prompt",
    "disable_logging",
    "dump_messages",
    "enable_logging",
    "extract_step_program",
    "function_to_json",
    "log_verbose",
    "merge_delta",
    "message_from_delta",
    "parse_steps",
    "retry_with_exponential_backoff",
    "strip_step_program",
    "unwrap_instructions",
]

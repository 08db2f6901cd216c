"""
StreamLoop Tool Executor - Resolve and run tool calls decoded from the stream

Tool-level failures never escape: an unknown tool, an argument payload that
could not be decoded, an exception inside the tool or a timeout all come back
as a ToolResult carrying a ToolError, so the agentic loop can continue and the
model can react to the failure.
"""

import asyncio
import inspect
import logging
from typing import List, Optional, Sequence

from ..errors import ToolError, ToolExecutionError, ToolNotFoundError
from .models import ToolCall, ToolResult
from .registry import ToolRegistry

logger = logging.getLogger(__name__)


class ToolExecutor:
    """
    Executes tool calls against a ToolRegistry

    Usage:
        executor = ToolExecutor(registry, timeout=30)
        results = await executor.execute_all(step_tool_calls)
    """

    def __init__(
        self,
        registry: ToolRegistry,
        timeout: Optional[float] = 30.0,
        parallel: bool = True,
    ):
        """
        Initialize ToolExecutor

        Args:
            registry: Tools available for execution
            timeout: Per call timeout in seconds (None disables it)
            parallel: Run the calls of one batch concurrently
        """
        self.registry = registry
        self.timeout = timeout
        self.parallel = parallel

    async def execute_all(
        self,
        tool_calls: Sequence[ToolCall],
        decode_errors: Optional[dict] = None,
    ) -> List[ToolResult]:
        """
        Execute a batch of tool calls from one step.

        Args:
            tool_calls: Calls in the order the model requested them
            decode_errors: Mapping of call id -> ToolError for calls whose
                arguments failed to decode; those are not invoked

        Returns:
            One ToolResult per call, in request order (not completion order)
        """
        decode_errors = decode_errors or {}

        async def _run(call: ToolCall) -> ToolResult:
            error = decode_errors.get(call.id)
            if error is not None:
                logger.warning(f"Tool '{call.name}' not invoked: {error}")
                return ToolResult(
                    tool_call_id=call.id,
                    tool_name=call.name,
                    arguments=call.arguments,
                    error=error,
                )
            return await self.execute(call)

        if self.parallel and len(tool_calls) > 1:
            # gather keeps input order regardless of completion order
            return list(await asyncio.gather(*[_run(call) for call in tool_calls]))

        results = []
        for call in tool_calls:
            results.append(await _run(call))
        return results

    async def execute(self, tool_call: ToolCall) -> ToolResult:
        """Execute a single tool call"""
        try:
            definition = self.registry.resolve(tool_call.name)
        except ToolNotFoundError as e:
            logger.warning(f"Model requested unknown tool '{tool_call.name}'")
            return self._error_result(tool_call, e)

        try:
            if self.timeout is not None:
                result = await asyncio.wait_for(
                    self._invoke(definition.executor, tool_call),
                    timeout=self.timeout,
                )
            else:
                result = await self._invoke(definition.executor, tool_call)
        except asyncio.TimeoutError as e:
            logger.warning(f"Tool '{tool_call.name}' timed out after {self.timeout}s")
            return self._error_result(tool_call, ToolExecutionError(
                tool_call.name,
                f"Tool '{tool_call.name}' timed out after {self.timeout}s",
                cause=e,
            ))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Tool '{tool_call.name}' execution failed: {e}", exc_info=True)
            return self._error_result(tool_call, ToolExecutionError(
                tool_call.name,
                f"Error executing {tool_call.name}: {e}",
                cause=e,
            ))

        logger.info(f"Tool '{tool_call.name}' executed: success")
        return ToolResult(
            tool_call_id=tool_call.id,
            tool_name=tool_call.name,
            arguments=tool_call.arguments,
            result=result,
        )

    @staticmethod
    async def _invoke(executor, tool_call: ToolCall):
        if inspect.iscoroutinefunction(executor):
            return await executor(**tool_call.arguments)
        # Sync tools run in a worker thread so the event loop and the timeout stay live
        result = await asyncio.to_thread(executor, **tool_call.arguments)
        if inspect.isawaitable(result):
            result = await result
        return result

    @staticmethod
    def _error_result(tool_call: ToolCall, error: ToolError) -> ToolResult:
        return ToolResult(
            tool_call_id=tool_call.id,
            tool_name=tool_call.name,
            arguments=tool_call.arguments,
            error=error,
        )

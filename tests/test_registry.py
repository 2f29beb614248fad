"""Unit tests for the operation router."""
# pylint: disable=missing-function-docstring

import unittest
from unittest.mock import Mock

from mcp.types import TextContent

from hello_mcp import registry
from hello_mcp.registry import DuplicateOperationError, InvocationResult, OperationDescriptor, Router
from hello_mcp.schemas import CalcInput, CalcOutput, GreetingInput, GreetingOutput, NoArguments


def _echo_descriptor(name="echo", **kwargs):
    return OperationDescriptor(
        name=name,
        title="Echo",
        description="Echoes a greeting",
        input_model=GreetingInput,
        output_model=GreetingOutput,
        **kwargs,
    )


class DescriptorTests(unittest.TestCase):
    """Descriptor construction checks."""

    def test_unknown_kind_rejected(self):
        with self.assertRaises(ValueError):
            _echo_descriptor(kind="widget")

    def test_resource_requires_uri(self):
        with self.assertRaises(ValueError):
            OperationDescriptor(
                name="info", title="Info", description="", input_model=NoArguments, kind=registry.RESOURCE
            )

    def test_output_schema(self):
        descriptor = _echo_descriptor()
        self.assertEqual(descriptor.output_schema()["required"], ["greeting"])
        bare = OperationDescriptor(name="x", title="X", description="", input_model=NoArguments)
        self.assertIsNone(bare.output_schema())


class RegistrationTests(unittest.TestCase):
    """Registration and lookup."""

    def test_register_and_lookup(self):
        router = Router()
        descriptor = router.register(_echo_descriptor(), Mock())
        self.assertIn("echo", router)
        self.assertEqual(len(router), 1)
        self.assertIs(router.descriptor("echo"), descriptor)
        self.assertEqual(router.names(), ["echo"])

    def test_duplicate_name_rejected(self):
        router = Router()
        router.register(_echo_descriptor(), Mock())
        with self.assertRaises(DuplicateOperationError):
            router.register(_echo_descriptor(), Mock())

    def test_unknown_descriptor_lookup(self):
        with self.assertRaises(KeyError):
            Router().descriptor("missing")

    def test_descriptors_filtered_by_kind(self):
        router = Router()
        router.register(_echo_descriptor(), Mock())
        router.register(_echo_descriptor("prompt", kind=registry.PROMPT), Mock())
        self.assertEqual([d.name for d in router.descriptors(registry.PROMPT)], ["prompt"])
        self.assertEqual(len(router.descriptors()), 2)


class DispatchTests(unittest.IsolatedAsyncioTestCase):
    """Validation, handler invocation and error mapping."""

    def setUp(self):
        self.router = Router()
        self.handler = Mock(return_value=InvocationResult.text("Hi, Bo!", structured={"greeting": "Hi, Bo!"}))
        self.router.register(_echo_descriptor(), self.handler)

    async def test_unknown_operation_never_runs_a_handler(self):
        result = await self.router.dispatch("nope", {"name": "Bo"})
        self.assertTrue(result.is_error)
        self.assertEqual(result.error_kind, registry.UNKNOWN_OPERATION)
        self.assertIn("Unknown operation", result.message)
        self.handler.assert_not_called()

    async def test_success_returns_handler_result_unchanged(self):
        result = await self.router.dispatch("echo", {"name": "Bo", "language": "english"})
        self.handler.assert_called_once_with(name="Bo", language="english")
        self.assertIs(result, self.handler.return_value)

    async def test_missing_field_names_it(self):
        result = await self.router.dispatch("echo", {"name": "Bo"})
        self.assertEqual(result.error_kind, registry.INVALID_ARGUMENTS)
        self.assertIn("'language'", result.message)
        self.handler.assert_not_called()

    async def test_wrong_type_is_not_coerced(self):
        result = await self.router.dispatch("echo", {"name": 42, "language": "english"})
        self.assertEqual(result.error_kind, registry.INVALID_ARGUMENTS)
        self.assertIn("'name'", result.message)

    async def test_unexpected_field_rejected(self):
        result = await self.router.dispatch("echo", {"name": "Bo", "language": "english", "extra": 1})
        self.assertEqual(result.error_kind, registry.INVALID_ARGUMENTS)
        self.assertIn("'extra'", result.message)

    async def test_value_error_is_domain_error(self):
        self.handler.side_effect = ValueError("bad input")
        result = await self.router.dispatch("echo", {"name": "Bo", "language": "english"})
        self.assertEqual(result.error_kind, registry.DOMAIN)
        self.assertEqual(result.message, "bad input")

    async def test_runtime_error_is_external_error(self):
        self.handler.side_effect = RuntimeError("upstream down")
        result = await self.router.dispatch("echo", {"name": "Bo", "language": "english"})
        self.assertEqual(result.error_kind, registry.EXTERNAL)
        self.assertEqual(result.message, "upstream down")

    async def test_output_shape_mismatch_is_reported(self):
        self.handler.return_value = InvocationResult.text("oops", structured={"wrong": 1})
        result = await self.router.dispatch("echo", {"name": "Bo", "language": "english"})
        self.assertEqual(result.error_kind, registry.OUTPUT_MISMATCH)

    async def test_async_handler_is_awaited(self):
        async def calc(num1, num2, operator):
            return InvocationResult.text("ok", structured={"result": num1 + num2})

        self.router.register(
            OperationDescriptor(
                name="calc", title="Calc", description="", input_model=CalcInput, output_model=CalcOutput
            ),
            calc,
        )
        result = await self.router.dispatch("calc", {"num1": 1, "num2": 2.5, "operator": "+"})
        self.assertFalse(result.is_error)
        self.assertEqual(result.structured, {"result": 3.5})

    async def test_decorator_registers_handler(self):
        @self.router.operation(
            OperationDescriptor(name="noop", title="Noop", description="", input_model=NoArguments)
        )
        def noop():
            return InvocationResult(content=[TextContent(type="text", text="done")])

        result = await self.router.dispatch("noop")
        self.assertEqual(result.message, "done")


class InvocationResultTests(unittest.TestCase):
    """Result helpers."""

    def test_error_result(self):
        result = InvocationResult.error("boom", registry.EXTERNAL)
        self.assertTrue(result.is_error)
        self.assertEqual(result.message, "boom")
        self.assertIsNone(result.structured)


if __name__ == "__main__":
    unittest.main()

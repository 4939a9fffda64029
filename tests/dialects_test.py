# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

import unittest

from mlir_bridge import ir
from mlir_bridge.dialects import _ods_common, arith, func, linalg
from mlir_bridge.exception import MLIRVersionError

from fake_capi import FakeCAPITestCase


class DialectTestCase(FakeCAPITestCase):
    def setUp(self):
        super().setUp()
        self.context = ir.Context()
        ir.activate(self.context)
        self.i32 = ir.Type.integer(32)
        self.f32 = ir.Type.f32()
        self.tensor = ir.Type.parse("tensor<4xf32>")

    def tearDown(self):
        ir.deactivate(self.context)
        self.context.close()
        super().tearDown()

    def values(self, *types):
        return ir.Block.create(list(types)).arguments

    def body(self, *types):
        region = ir.Region()
        region.append(ir.Block.create(list(types)))
        return region


class OdsCommonTest(DialectTestCase):
    def testToAttribute(self):
        self.assertEqual(str(_ods_common.to_attribute(True)), "true")
        self.assertEqual(str(_ods_common.to_attribute(3)), "3 : i64")
        self.assertEqual(str(_ods_common.to_attribute("x")), '"x"')
        self.assertEqual(str(_ods_common.to_attribute(self.i32)), "i32")
        self.assertEqual(
            str(_ods_common.to_attribute(["a", 1])), '["a", 1 : i64]'
        )
        with self.assertRaises(TypeError):
            _ods_common.to_attribute(object())

    def testOperationOrValue(self):
        a, b = self.values(self.i32, self.i32)
        add = arith.addi(a, b)
        self.assertEqual(_ods_common.get_op_result_or_value(add), add.result)
        self.assertEqual(_ods_common.get_op_result_or_value(a), a)
        with self.assertRaises(TypeError):
            _ods_common.get_op_result_or_value(3)


class ArithTest(DialectTestCase):
    def testBinaryInfersResult(self):
        a, b = self.values(self.i32, self.i32)
        op = arith.addi(a, b)
        self.assertEqual(op.name, "arith.addi")
        self.assertEqual(op.operands, [a, b])
        self.assertEqual(op.result.type, self.i32)

    def testBinaryWithExplicitResult(self):
        a, b = self.values(self.f32, self.f32)
        op = arith.mulf(a, b, result=self.f32)
        self.assertEqual(op.result.type, self.f32)

    def testBuilderNames(self):
        self.assertEqual(arith.floordivsi.__name__, "floordivsi")
        self.assertIn("towards -inf", arith.floordivsi.__doc__)

    def testOperationAsOperand(self):
        a, b = self.values(self.i32, self.i32)
        total = arith.subi(arith.addi(a, b), b)
        self.assertEqual(total.operands[1], b)

    def testFloatMinMax(self):
        a, b = self.values(self.f32, self.f32)
        self.assertEqual(arith.maxf(a, b).name, "arith.maximumf")
        self.assertEqual(arith.minf(a, b).name, "arith.minimumf")
        self.assertEqual(arith.maxnumf(a, b).name, "arith.maxnumf")
        op = arith.minnumf(a, b)
        self.assertEqual(op.name, "arith.minnumf")
        self.assertEqual(op.result.type, self.f32)

    def testCast(self):
        (a,) = self.values(self.i32)
        op = arith.extsi(a, out=ir.Type.integer(64))
        self.assertEqual(str(op.result.type), "i64")
        self.assertEqual(op.name, "arith.extsi")

    def testCmpi(self):
        a, b = self.values(self.i32, self.i32)
        op = arith.cmpi(a, b, predicate=arith.CmpIPredicate.slt)
        self.assertEqual(str(op.attribute("predicate")), "2 : i64")
        self.assertEqual(str(op.result.type), "i1")
        with self.assertRaises(ValueError):
            arith.cmpi(a, b, predicate=42)

    def testCmpf(self):
        a, b = self.values(self.f32, self.f32)
        op = arith.cmpf(a, b, predicate=arith.CmpFPredicate.une)
        self.assertEqual(str(op.attribute("predicate")), "13 : i64")

    def testConstant(self):
        op = arith.constant(ir.Attribute.get_integer(42, self.i32))
        self.assertEqual(op.result.type, self.i32)
        self.assertEqual(str(op.attribute("value")), "42 : i32")

    def testSelect(self):
        (cond,) = self.values(ir.Type.integer(1))
        a, b = self.values(self.f32, self.f32)
        op = arith.select(cond, a, b)
        self.assertEqual(op.result.type, self.f32)


class LegacyArithTest(DialectTestCase):
    mlir_version = "17.0"

    def testFloatMinMax(self):
        a, b = self.values(self.f32, self.f32)
        self.assertEqual(arith.maxf(a, b).name, "arith.maxf")
        self.assertEqual(arith.minf(a, b).name, "arith.minf")
        with self.assertRaisesRegex(MLIRVersionError, "requires MLIR version 18"):
            arith.maximumf(a, b)


class FuncTest(DialectTestCase):
    def testFunction(self):
        region = self.body(self.i32)
        block = next(region.blocks)
        block.append(func.return_(block.arguments))
        op = func.func_(
            "identity", ir.Type.parse("(i32) -> i32"), region, sym_visibility="private"
        )
        self.assertEqual(op.name, "func.func")
        self.assertEqual(str(op.attribute("sym_name")), '"identity"')
        self.assertEqual(str(op.attribute("function_type")), "(i32) -> i32")
        self.assertEqual(str(op.attribute("sym_visibility")), '"private"')
        self.assertEqual(op.results, [])

    def testCall(self):
        (a,) = self.values(self.i32)
        op = func.call("identity", [a], result_types=[self.i32])
        self.assertEqual(str(op.attribute("callee")), "@identity")
        self.assertEqual(op.result.type, self.i32)

    def testConstant(self):
        op = func.constant("identity", result=ir.Type.parse("(i32) -> i32"))
        self.assertEqual(str(op.attribute("value")), "@identity")


class LinalgTest(DialectTestCase):
    def testSegmentsRoundTrip(self):
        a, b, init = self.values(self.tensor, self.tensor, self.tensor)
        op = linalg.add(
            [a, b], [init], result_tensors=[self.tensor], region=self.body()
        )
        attr = op.attribute("operandSegmentSizes")
        self.assertEqual(str(attr), "array<i32: 2, 1>")
        segments = op.operand_segments(linalg.STRUCTURED_OPERAND_SEGMENTS)
        self.assertEqual(segments["inputs"], [a, b])
        self.assertEqual(segments["outputs"], [init])
        self.assertTrue(op.verify())

    def testEmptyInputs(self):
        (init,) = self.values(self.tensor)
        op = linalg.copy([], [init], result_tensors=[self.tensor], region=self.body())
        segments = op.operand_segments(["inputs", "outputs"])
        self.assertEqual(segments["inputs"], [])
        self.assertEqual(segments["outputs"], [init])

    def testGeneric(self):
        a, init = self.values(self.tensor, self.tensor)
        op = linalg.generic(
            [a],
            [init],
            result_tensors=[self.tensor],
            indexing_maps=[
                ir.Attribute.parse("affine_map<(d0) -> (d0)>"),
                ir.Attribute.parse("affine_map<(d0) -> (d0)>"),
            ],
            iterator_types=[ir.Attribute.parse("#linalg.iterator_type<parallel>")],
            library_call="my_add",
            region=self.body(self.f32, self.f32),
        )
        self.assertEqual(str(op.attribute("library_call")), '"my_add"')
        self.assertIsNone(op.attribute("doc"))
        self.assertEqual(
            [len(v) for v in op.operand_segments(["inputs", "outputs"]).values()],
            [1, 1],
        )

    def testRegionOwnershipMoves(self):
        a, b, init = self.values(self.tensor, self.tensor, self.tensor)
        region = self.body()
        op = linalg.matmul([a, b], [init], result_tensors=[self.tensor], region=region)
        self.assertIs(region._owner, op)
        self.assertFalse(region._owned)

    def testBroadcast(self):
        a, init = self.values(self.tensor, ir.Type.parse("tensor<4x8xf32>"))
        op = linalg.broadcast(
            a, init, result=[], dimensions=[1], region=self.body(self.f32, self.f32)
        )
        self.assertEqual(str(op.attribute("dimensions")), "array<i64: 1>")
        self.assertIsNone(op.attribute("operandSegmentSizes"))

    def testIndexAndYield(self):
        index = linalg.index(dim=0)
        self.assertEqual(str(index.result.type), "index")
        self.assertEqual(str(index.attribute("dim")), "0 : i64")
        op = linalg.yield_([index])
        self.assertEqual(op.operands, [index.result])


class LegacySegmentsTest(DialectTestCase):
    mlir_version = "15.0"

    def testDenseElementsEncoding(self):
        a, b, init = self.values(self.tensor, self.tensor, self.tensor)
        op = linalg.fill([a, b], [init], result_tensors=[self.tensor], region=self.body())
        attr = op.attribute("operand_segment_sizes")
        self.assertEqual(str(attr), "dense<[2, 1]> : vector<2xi32>")
        self.assertIsNone(op.attribute("operandSegmentSizes"))
        segments = op.operand_segments(["inputs", "outputs"])
        self.assertEqual(segments["inputs"], [a, b])
        self.assertTrue(op.verify())


class Version16SegmentsTest(DialectTestCase):
    mlir_version = "16.0"

    def testDenseArrayUnderLegacyName(self):
        a, init = self.values(self.tensor, self.tensor)
        op = linalg.fill([a], [init], result_tensors=[self.tensor], region=self.body())
        self.assertEqual(str(op.attribute("operand_segment_sizes")), "array<i32: 1, 1>")


if __name__ == "__main__":
    unittest.main()

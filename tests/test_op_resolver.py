# tests/test_op_resolver.py
# -------------------------------------------------------
# resolvers + בדיקת מודל (inspect_model) בלי להריץ Interpreter
# -------------------------------------------------------
import os
import unittest

import tflite_fixtures as fx
from landmark_task.landmark_detection.engine import inspect_model, load_external_file
from landmark_task.landmark_detection.op_resolver import (
    OperatorCode, BuiltinOpResolver, BuiltinRefOpResolver, MutableOpResolver,
    MoveNetOpResolver, MoveNetOpResolverMissingOps, all_builtin_op_names, builtin_op_name,
)
from landmark_task.landmark_detection.options import ExternalFile
from landmark_task.landmark_detection.status import StatusCode, TaskError, TfLiteSupportStatus


class TestInspectModel(unittest.TestCase):
    def test_reads_builtin_and_custom_codes(self):
        buf = fx.model_with_op_codes(["CONV_2D", ("DEPTHWISE_CONV_2D", 3), "TFLite_Detection_PostProcess"])
        insp = inspect_model(buf)
        self.assertEqual(insp.version, 3)
        self.assertEqual(insp.num_subgraphs, 1)
        self.assertEqual(insp.operator_codes, [
            OperatorCode("CONV_2D"),
            OperatorCode("DEPTHWISE_CONV_2D", version=3),
            OperatorCode("TFLite_Detection_PostProcess", custom=True),
        ])
        self.assertEqual(insp.custom_ops, ["TFLite_Detection_PostProcess"])
        self.assertFalse(insp.has_metadata)
        self.assertEqual(insp.description, "landmark test model")

    def test_extended_builtin_code(self):
        # קודים ≥127 נשמרים רק ב-builtin_code
        name = builtin_op_name(130)
        insp = inspect_model(fx.model_with_op_codes([name]))
        self.assertEqual(insp.operator_codes[0].name, name)
        self.assertFalse(insp.operator_codes[0].custom)

    def test_rejects_missing_identifier(self):
        buf = bytearray(fx.identity_model())
        buf[4:8] = b"XXXX"
        with self.assertRaises(TaskError) as cm:
            inspect_model(bytes(buf))
        self.assertEqual(cm.exception.support_status, TfLiteSupportStatus.INVALID_FLATBUFFER_ERROR)
        self.assertIn("not a valid Flatbuffer", cm.exception.message)

    def test_rejects_truncated_buffer(self):
        with self.assertRaises(TaskError) as cm:
            inspect_model(fx.identity_model()[:12])
        self.assertEqual(cm.exception.support_status, TfLiteSupportStatus.INVALID_FLATBUFFER_ERROR)


class TestLoadExternalFile(unittest.TestCase):
    def test_content_wins(self):
        self.assertEqual(load_external_file(ExternalFile(file_name="/nope", file_content=b"abc")), b"abc")

    def test_empty_external_file(self):
        with self.assertRaises(TaskError) as cm:
            load_external_file(ExternalFile())
        self.assertEqual(cm.exception.code, StatusCode.INVALID_ARGUMENT)

    def test_directory_is_rejected(self):
        with self.assertRaises(TaskError) as cm:
            load_external_file(ExternalFile(file_name=os.path.dirname(os.path.abspath(__file__))))
        self.assertEqual(cm.exception.support_status, TfLiteSupportStatus.FILE_READ_ERROR)


class TestResolvers(unittest.TestCase):
    def test_builtin_resolver_knows_all_builtins(self):
        r = BuiltinOpResolver()
        self.assertTrue(r.find_builtin("CONV_2D"))
        self.assertTrue(r.find_custom("TFLite_Detection_PostProcess"))
        self.assertFalse(r.find_custom("MyCustomOp"))
        self.assertNotIn("CUSTOM", all_builtin_op_names())
        r.check_model([OperatorCode("ADD"), OperatorCode("Mfcc", custom=True)])

    def test_builtin_ref_resolver_type(self):
        self.assertEqual(BuiltinRefOpResolver().op_resolver_type, "BUILTIN_REF")
        self.assertEqual(BuiltinOpResolver().op_resolver_type, "AUTO")

    def test_mutable_resolver(self):
        r = MutableOpResolver().add_builtin("conv_2d").add_custom("MyOp", "RegisterMyOp")
        self.assertTrue(r.find_builtin("CONV_2D"))
        self.assertTrue(r.find_custom("MyOp"))
        self.assertEqual(r.custom_op_registerers, ["RegisterMyOp"])
        with self.assertRaises(ValueError):
            r.add_builtin("NOT_A_REAL_OP")

        other = MutableOpResolver().add_builtin("ADD").add_custom("Other")
        r.add_all(other)
        self.assertTrue(r.find_builtin("ADD"))
        self.assertTrue(r.find_custom("Other"))
        self.assertEqual(r.custom_op_registerers, ["RegisterMyOp"])

    def test_check_model_reports_first_missing_op(self):
        r = MoveNetOpResolverMissingOps()
        with self.assertRaises(TaskError) as cm:
            r.check_model([OperatorCode("CONV_2D"), OperatorCode("MyOp", custom=True), OperatorCode("ADD")])
        self.assertEqual(cm.exception.message, "Encountered unresolved custom op: MyOp.")
        self.assertEqual(cm.exception.code, StatusCode.INVALID_ARGUMENT)
        self.assertEqual(cm.exception.get_payload(), "400")

    def test_movenet_resolver_is_superset_of_missing_ops(self):
        full, partial = MoveNetOpResolver(), MoveNetOpResolverMissingOps()
        for op in ("CONV_2D", "DEPTHWISE_CONV_2D"):
            self.assertTrue(partial.find_builtin(op))
            self.assertTrue(full.find_builtin(op))
        self.assertTrue(full.find_builtin("RESIZE_BILINEAR"))
        self.assertFalse(partial.find_builtin("RESIZE_BILINEAR"))


if __name__ == "__main__":
    unittest.main()

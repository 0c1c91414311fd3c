"""
Tests for the shared helpers.

This module verifies semantic guarantees of the `Unset` sentinel:
- Singleton identity (single instance per interpreter process).
- Falsy semantics and representation behavior.
- Copying, deep copying, pickling, and thread safety properties.
- Finality (type cannot be subclassed).

And the helpers built on top of it (coalesce, rename, mirror, firstline).
"""
import copy
import pickle
import unittest
from threading import Thread, Lock
from unittest import TestCase

from subroute.utils import *


class UnsetTest(TestCase):
    """
    Test suite for the `UnsetType` singleton.
    """

    def setUp(self) -> None:
        self.unset: UnsetType = UnsetType()

    def testSingleton(self) -> None:
        """
        The constructor returns the same object reference on every call.
        """
        self.assertIs(self.unset, UnsetType())
        self.assertIs(Unset, self.unset)

    def testFalsy(self) -> None:
        """
        The sentinel is falsy but distinct from other falsy values.
        """
        self.assertFalse(self.unset)
        self.assertIsNot(self.unset, None)
        self.assertNotEqual(self.unset, 0)
        self.assertNotEqual(self.unset, "")

    def testRepr(self) -> None:
        self.assertEqual(repr(self.unset), "Unset")
        self.assertEqual(str(self.unset), "Unset")

    def testUnion(self) -> None:
        """
        `str | Unset` can be used in isinstance checks.
        """
        self.assertIsInstance("text", str | Unset)
        self.assertIsInstance(Unset, str | Unset)
        self.assertNotIsInstance(1, str | Unset)
        self.assertIsInstance(Unset, Unset | str)
        self.assertIsInstance(Unset, str | int | Unset)
        self.assertIsInstance(3, str | int | Unset)

    def testCopyAndPickle(self) -> None:
        """
        Copy/deepcopy/pickle round-trips preserve identity.
        """
        self.assertIs(copy.copy(self.unset), self.unset)
        self.assertIs(copy.deepcopy(self.unset), self.unset)
        self.assertIs(pickle.loads(pickle.dumps(self.unset)), self.unset)

    def testThreadSafety(self) -> None:
        """
        Concurrent construction attempts return the same instance.
        """
        results = []
        lock = Lock()

        def worker():
            instance = UnsetType()
            with lock:
                results.append(instance)

        threads = [Thread(target=worker) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertTrue(all(result is self.unset for result in results))

    def testFinal(self) -> None:
        """
        The type cannot be subclassed.
        """
        with self.assertRaises(TypeError):
            type("Derived", (UnsetType,), {})


class CoalesceTest(TestCase):

    def testReplacesUnset(self) -> None:
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))

    def testKeepsOtherValues(self) -> None:
        for value in (None, 0, "", [], False):
            with self.subTest(value=value):
                self.assertIs(coalesce(value, "fallback"), value)


class RenameTest(TestCase):

    def testFunctionForm(self) -> None:
        function = rename(lambda: None, "handler")
        self.assertEqual(function.__name__, "handler")
        self.assertEqual(function.__qualname__, "handler")

    def testDecoratorForm(self) -> None:
        @rename("usage")
        def printer():
            pass

        self.assertEqual(printer.__name__, "usage")

    def testInvalidArguments(self) -> None:
        with self.assertRaises(TypeError):
            rename(1, "name")
        with self.assertRaises(TypeError):
            rename(lambda: None, 1)
        with self.assertRaises(TypeError):
            rename(1)
        with self.assertRaises(TypeError):
            rename()
        with self.assertRaises(TypeError):
            rename("name")(1)
        with self.assertRaises(TypeError):
            rename(len, "length")

    def testBoundMethodRejected(self) -> None:
        """
        Bound methods share their name with the function; wrap them in a lambda.
        """
        text = "value"
        with self.assertRaises(TypeError):
            rename(text.upper, "upper")
        self.assertEqual(rename(lambda: text.upper(), "upper").__name__, "upper")


class MirrorTest(TestCase):

    def testReadOnly(self) -> None:
        class Record:
            name = mirror("name")

            def __init__(self, name):
                self._name = name

        record = Record("value")
        self.assertEqual(record.name, "value")
        with self.assertRaises(AttributeError):
            record.name = "other"

    def testInvalidName(self) -> None:
        with self.assertRaises(TypeError):
            mirror(1)


class FirstlineTest(TestCase):

    def testFirstLine(self) -> None:
        self.assertEqual(firstline("summary\nmore"), "summary")
        self.assertEqual(firstline("summary\r\nmore"), "summary")
        self.assertEqual(firstline("single"), "single")
        self.assertEqual(firstline(""), "")

    def testNonString(self) -> None:
        with self.assertRaises(TypeError):
            firstline(None)


if __name__ == "__main__":
    unittest.main()

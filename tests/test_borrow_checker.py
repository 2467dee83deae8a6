from borrow_checker import BorrowChecker
from diagnostics import ViolationKind
from errors import ModelError, UnsupportedMode
from parser import parse
from program import (
    Program, RefKind, Literal, Name, BinaryOp,
    DeclareBinding, DeclareReference, RebindReference,
    AssignBinding, AssignThroughReference,
    ReadBinding, ReadThroughReference,
    EnterScope, ExitScope,
)
import unittest


def kinds(diagnostics):
    return [d.kind for d in diagnostics]


class BorrowCheckerTest(unittest.TestCase):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.maxDiff = None

    def test_owner_write_while_exclusively_borrowed(self):
        program = parse("""
        let mut a = 5;
        let foo = &mut a;
        a = a + 1;          # Error: 'foo' still holds 'a' exclusively
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.OWNER_ACCESS_WHILE_BORROWED], kinds(errors))
        self.assertEqual(('a', 'foo'), errors[0].identifiers)
        self.assertEqual("Cannot assign to 'a'; 'a' is exclusively borrowed by 'foo'", errors[0].message)
        self.assertEqual(4, errors[0].location.row)
        self.assertEqual(2, errors[0].statement)

    def test_borrow_ends_with_its_scope(self):
        program = parse("""
        let mut a = 5;
        {
            let foo = &a;
        }                   # 'foo' is dropped here
        a = a + 1;
        """)
        self.assertEqual([], BorrowChecker.check(program))

    def test_rebound_reference_outlives_referent(self):
        program = parse("""
        let mut a = 5;
        {
            let mut foo = &mut a;
            let mut b = 6;      # Declared after 'foo', so dropped before it
            foo = &mut b;
            *foo = 100;
        }
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.DANGLING_REFERENT_VIOLATION], kinds(errors))
        self.assertEqual(('b', 'foo'), errors[0].identifiers)
        self.assertEqual("'b' does not live long enough; it is dropped while still borrowed by 'foo'", errors[0].message)
        self.assertEqual(8, errors[0].location.row)

    def test_rebound_reference_outlives_referent_at_end_of_program(self):
        program = parse("""
        let mut a = 5;
        let mut foo = &mut a;
        let mut b = 6;
        foo = &mut b;
        *foo = 100;
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.DANGLING_REFERENT_VIOLATION], kinds(errors))
        self.assertEqual(('b', 'foo'), errors[0].identifiers)
        self.assertEqual(program.end, errors[0].location)
        self.assertIsNone(errors[0].statement)

    def test_owner_read_while_exclusively_borrowed_in_same_scope(self):
        program = parse("""
        let mut a = 5;
        let mut foo = &mut a;
        let mut b = 6;
        foo = &mut b;
        *foo = 100;
        print(b);           # Error: 'foo' is still alive until the end of the scope
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([
            ViolationKind.OWNER_ACCESS_WHILE_BORROWED,
            ViolationKind.DANGLING_REFERENT_VIOLATION,
        ], kinds(errors))
        self.assertEqual(('b', 'foo'), errors[0].identifiers)
        self.assertEqual(('b', 'foo'), errors[1].identifiers)

    def test_referent_declared_before_reference_ok(self):
        program = parse("""
        let mut a = 5;
        let mut b = 6;
        {
            let mut foo = &mut a;
            foo = &mut b;
            *foo = 100;
        }
        print(b);
        """)
        self.assertEqual([], BorrowChecker.check(program))

    def test_new_read_path_while_exclusively_borrowed(self):
        program = parse("""
        let mut b = 6;
        let foo = &mut b;
        *foo = 100;
        read(&b);           # Error: reading needs a shared borrow of 'b'
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.EXCLUSIVITY_VIOLATION], kinds(errors))
        self.assertEqual(('b', 'foo'), errors[0].identifiers)

    def test_programs_built_without_parser(self):
        program = Program([
            DeclareBinding('a', mutable=True, value=Literal(5)),
            DeclareReference('foo', 'a', RefKind.EXCLUSIVE),
            AssignBinding('a', BinaryOp('+', Name('a'), Literal(1))),
        ])
        self.assertEqual([ViolationKind.OWNER_ACCESS_WHILE_BORROWED], kinds(BorrowChecker.check(program)))

        program = [
            DeclareBinding('a', mutable=True),
            DeclareReference('foo', 'a', RefKind.EXCLUSIVE, mutable=True),
            DeclareBinding('b', mutable=True),
            RebindReference('foo', 'b'),
            AssignThroughReference('foo', Literal(100)),
        ]
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.DANGLING_REFERENT_VIOLATION], kinds(errors))
        self.assertEqual(('b', 'foo'), errors[0].identifiers)

        program = [
            DeclareBinding('b', mutable=True),
            DeclareReference('foo', 'b', RefKind.EXCLUSIVE),
            AssignThroughReference('foo', Literal(100)),
            ReadThroughReference('b'),
        ]
        self.assertEqual([ViolationKind.EXCLUSIVITY_VIOLATION], kinds(BorrowChecker.check(program)))

    def test_exclusive_borrow_rejects_shared_borrow(self):
        program = parse("""
        let mut a = 1;
        let r = &mut a;
        let s = &a;
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.EXCLUSIVITY_VIOLATION], kinds(errors))
        self.assertEqual(('a', 's', 'r'), errors[0].identifiers)
        self.assertEqual("'s' cannot share borrow 'a'; 'a' is already exclusively borrowed by 'r'", errors[0].message)

    def test_exclusive_borrow_rejects_exclusive_borrow(self):
        program = parse("""
        let mut a = 1;
        let r = &mut a;
        let m = &mut a;
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.EXCLUSIVITY_VIOLATION], kinds(errors))
        self.assertEqual(('a', 'm', 'r'), errors[0].identifiers)
        self.assertEqual("'m' cannot mutably borrow 'a'; 'a' is already exclusively borrowed by 'r'", errors[0].message)

    def test_exclusive_borrow_rejects_owner_read(self):
        program = parse("""
        let mut a = 1;
        let r = &mut a;
        print(a);
        let c = a + 1;
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.OWNER_ACCESS_WHILE_BORROWED] * 2, kinds(errors))
        self.assertEqual("Cannot read 'a'; 'a' is exclusively borrowed by 'r'", errors[0].message)

    def test_exclusive_reference_reads_and_writes_its_referent(self):
        program = parse("""
        let mut a = 1;
        let r = &mut a;
        *r = *r + 1;
        print(*r);
        print(r);
        """)
        self.assertEqual([], BorrowChecker.check(program))

    def test_write_through_reference_reading_the_owner(self):
        program = parse("""
        let mut a = 1;
        let m = &mut a;
        *m = a;             # Error: 'a' is only reachable through 'm'
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.OWNER_ACCESS_WHILE_BORROWED], kinds(errors))

    def test_shared_borrows_allow_reads(self):
        program = parse("""
        let a = 1;
        let r = &a;
        let s = &a;
        print(a);
        print(*r);
        read(&a);
        let c = *s + a;
        """)
        self.assertEqual([], BorrowChecker.check(program))

    def test_shared_borrow_rejects_owner_write(self):
        program = parse("""
        let mut a = 1;
        let r = &a;
        let s = &a;
        a = 2;
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.OWNER_ACCESS_WHILE_BORROWED], kinds(errors))
        self.assertEqual(('a', 'r', 's'), errors[0].identifiers)
        self.assertEqual("Cannot assign to 'a'; 'a' is shared borrowed by 'r', 's'", errors[0].message)

    def test_shared_borrow_rejects_exclusive_borrow(self):
        program = parse("""
        let mut a = 1;
        let r = &a;
        let m = &mut a;
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.EXCLUSIVITY_VIOLATION], kinds(errors))
        self.assertEqual(('a', 'm', 'r'), errors[0].identifiers)

    def test_assign_to_immutable_binding(self):
        program = parse("""
        let a = 1;
        a = 2;
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.IMMUTABLE_OWNER_ASSIGNMENT], kinds(errors))
        self.assertEqual(('a', ), errors[0].identifiers)

    def test_assign_to_immutable_and_borrowed_binding(self):
        program = parse("""
        let a = 1;
        let r = &a;
        a = 2;
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([
            ViolationKind.IMMUTABLE_OWNER_ASSIGNMENT,
            ViolationKind.OWNER_ACCESS_WHILE_BORROWED,
        ], kinds(errors))

    def test_rebind_immutable_reference(self):
        program = parse("""
        let mut a = 1;
        let b = 2;
        let r = &a;
        r = &b;             # Error: 'r' is not mutable
        a = 3;              # Error: 'r' still borrows 'a'
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([
            ViolationKind.IMMUTABLE_OWNER_ASSIGNMENT,
            ViolationKind.OWNER_ACCESS_WHILE_BORROWED,
        ], kinds(errors))
        self.assertEqual(('r', ), errors[0].identifiers)
        self.assertEqual(('a', 'r'), errors[1].identifiers)

    def test_rebind_releases_previous_target(self):
        program = parse("""
        let mut a = 1;
        let mut b = 2;
        let mut r = &mut a;
        r = &mut b;
        a = 3;
        print(a);
        """)
        self.assertEqual([], BorrowChecker.check(program))

    def test_rebind_conflict_is_reported_at_the_rebind(self):
        program = parse("""
        let mut a = 1;
        let mut b = 2;
        let s = &b;
        let mut r = &mut a;
        r = &mut b;         # Error: 's' shares 'b'
        a = 5;              # 'a' was released by the rebind
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.EXCLUSIVITY_VIOLATION], kinds(errors))
        self.assertEqual(('b', 'r', 's'), errors[0].identifiers)
        self.assertEqual(6, errors[0].location.row)

    def test_failed_borrow_is_reported_once(self):
        program = parse("""
        let mut a = 1;
        let r = &mut a;
        let m = &mut a;     # Error: 'r' holds 'a'
        *m = 2;
        print(*m);
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.EXCLUSIVITY_VIOLATION], kinds(errors))

    def test_dropping_binding_with_several_references(self):
        program = parse("""
        let a = 1;
        let mut r = &a;
        let mut s = &a;
        {
            let b = 2;
            r = &b;
            s = &b;
        }                   # Error: 'b' is dropped while 'r' and 's' point at it
        print(*r);
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.DANGLING_REFERENT_VIOLATION], kinds(errors))
        self.assertEqual(('b', 'r', 's'), errors[0].identifiers)

    def test_shadowing_reference_ends_its_borrow(self):
        program = parse("""
        let mut a = 1;
        let r = &mut a;
        let r = &a;         # The exclusive 'r' is gone
        print(a);
        """)
        self.assertEqual([], BorrowChecker.check(program))

    def test_binding_shadowing_exclusive_reference_ends_its_borrow(self):
        program = parse("""
        let mut a = 1;
        let r = &mut a;
        let r = 5;          # The exclusive 'r' is gone
        a = 2;
        let m = &mut a;
        """)
        lines = []
        self.assertEqual([], BorrowChecker.check(program, logger=lines.append))
        self.assertIn("'r' releases 'a' (shadowed): Free", lines)

    def test_binding_shadowing_shared_reference_ends_its_borrow(self):
        program = parse("""
        let mut a = 1;
        let r = &a;
        let r = 2;          # The shared 'r' is gone
        a = 3;
        print(r);
        """)
        self.assertEqual([], BorrowChecker.check(program))

    def test_binding_shadowing_reference_in_inner_scope_keeps_the_borrow(self):
        program = parse("""
        let mut a = 1;
        let r = &mut a;
        {
            let r = 5;
            a = 2;          # Error: the outer 'r' still holds 'a'
        }
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.OWNER_ACCESS_WHILE_BORROWED], kinds(errors))
        self.assertEqual(('a', 'r'), errors[0].identifiers)

    def test_shadowed_binding_is_still_dropped_in_order(self):
        program = parse("""
        let a = 1;
        let mut r = &a;
        {
            let b = 2;
            let b = 3;
            r = &b;
        }
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([ViolationKind.DANGLING_REFERENT_VIOLATION], kinds(errors))
        self.assertEqual(('b', 'r'), errors[0].identifiers)

    def test_inner_scope_borrow_of_outer_binding(self):
        program = parse("""
        let mut a = 1;
        {
            let r = &mut a;
            *r = 2;
            {
                let b = *r;
                print(b);
            }
        }
        a = 3;
        print(a);
        """)
        self.assertEqual([], BorrowChecker.check(program))

    def test_reports_every_independent_problem(self):
        program = parse("""
        let a = 1;
        a = 2;
        let mut b = 1;
        let r = &mut b;
        print(b);
        let s = &b;
        """)
        errors = BorrowChecker.check(program)
        self.assertEqual([
            ViolationKind.IMMUTABLE_OWNER_ASSIGNMENT,
            ViolationKind.OWNER_ACCESS_WHILE_BORROWED,
            ViolationKind.EXCLUSIVITY_VIOLATION,
        ], kinds(errors))
        self.assertEqual([1, 4, 5], [e.statement for e in errors])

    def test_logger_traces_state_transitions(self):
        program = parse("""
        let mut a = 1;
        let r = &mut a;
        """)
        lines = []
        BorrowChecker.check(program, logger=lines.append)
        self.assertIn("'r' borrows 'a': ExclusiveBy(r)", lines)
        self.assertIn("'r' releases 'a' (dropped): Free", lines)
        self.assertEqual("drop 'a'", lines[-1])

    def test_non_lexical_mode_is_unsupported(self):
        program = parse("let a = 1;")
        with self.assertRaises(UnsupportedMode):
            BorrowChecker.check(program, mode='non-lexical')
        with self.assertRaises(ValueError):
            BorrowChecker.check(program, mode='polonius')

    def test_malformed_program(self):
        with self.assertRaises(ModelError):
            BorrowChecker.check(parse("let r = &a;"))
        with self.assertRaises(ModelError):
            BorrowChecker.check([ExitScope()])

    def test_analyses_do_not_share_state(self):
        program = parse("""
        let mut a = 1;
        let r = &mut a;
        """)
        self.assertEqual([], BorrowChecker.check(program))
        self.assertEqual([], BorrowChecker.check(program))

    def test_open_scopes_are_closed_at_end(self):
        program = Program([
            DeclareBinding('a'),
            EnterScope(),
            DeclareReference('r', 'a'),
            ReadBinding('a'),
        ])
        self.assertEqual([], BorrowChecker.check(program))


if __name__ == '__main__':
    unittest.main()

"""SOL-X Validator Tests.

Name resolution, reserved names, type well-formedness, expression typing,
assignment and init rules, and the shape of the HIR produced on success.
"""

import pytest

from solx.parser import parse
from solx.validator import validate
from solx.errors import ValidationError, ErrorKind, Phase
from solx.hir import (
    ParamKind, HirInit, HirRequire, HirAssign, HirLiteral, HirBinary,
    HirFieldGet, HirAccountKey, HirParamRef, HirUnary,
)
from solx.types import U8, U64, I64, BOOL, PUBKEY, AccountRef


STATE = """
program P
account State {
    owner: Pubkey,
    count: u64,
    delta: i64,
    level: u8,
    active: bool,
    label: String<8>,
}
"""


def check(source):
    return validate(parse(source))


def check_body(body, params="user: Signer, state: State, amount: u64"):
    return check(STATE + f"instruction run({params}) {{\n{body}\n}}\n")


def fails(source_or_body, kind, body=True, **kwargs):
    with pytest.raises(ValidationError) as exc:
        if body:
            check_body(source_or_body, **kwargs)
        else:
            check(source_or_body)
    diag = exc.value.diagnostic
    assert diag.phase == Phase.VALIDATE
    assert diag.kind == kind, diag.message
    return diag


class TestNameResolution:

    def test_unknown_parameter_account_type(self):
        diag = fails("program P instruction a(v: Vault) {}", ErrorKind.UNRESOLVED_NAME, body=False)
        assert diag.details["name"] == "Vault"
        assert "Vault" in diag.message

    def test_unknown_field_account_type(self):
        diag = fails("program P account A { inner: Missing }", ErrorKind.UNRESOLVED_NAME, body=False)
        assert diag.details["name"] == "Missing"

    def test_account_declared_after_use(self):
        hir = check("program P instruction a(s: Later) {} account Later { v: u8 }")
        assert hir.instructions[0].params[0].account.name == "Later"

    def test_unknown_identifier(self):
        diag = fails("require ghost", ErrorKind.UNRESOLVED_NAME)
        assert diag.details["name"] == "ghost"

    def test_unknown_init_account_type(self):
        fails("init account state: Nope payer user", ErrorKind.UNRESOLVED_NAME)

    def test_unknown_payer(self):
        diag = fails("init account state: State payer nobody", ErrorKind.UNRESOLVED_NAME)
        assert diag.details["name"] == "nobody"

    def test_error_location_points_at_name(self):
        diag = fails("program P\ninstruction a(x: u8,\n  v: Vault) {}", ErrorKind.UNRESOLVED_NAME, body=False)
        assert (diag.location.line, diag.location.column) == (3, 3)


class TestDuplicates:

    def test_duplicate_account(self):
        fails("program P account A { x: u8 } account A { y: u8 }", ErrorKind.DUPLICATE_DECLARATION, body=False)

    def test_duplicate_instruction(self):
        fails("program P instruction a() {} instruction a() {}", ErrorKind.DUPLICATE_DECLARATION, body=False)

    def test_instructions_colliding_after_case_conversion(self):
        fails("program P instruction make_offer() {} instruction makeOffer() {}",
              ErrorKind.DUPLICATE_DECLARATION, body=False)

    def test_duplicate_field(self):
        fails("program P account A { x: u8, x: u16 }", ErrorKind.DUPLICATE_DECLARATION, body=False)

    def test_duplicate_param(self):
        fails("program P instruction a(x: u8, x: u8) {}", ErrorKind.DUPLICATE_DECLARATION, body=False)

    def test_same_param_name_in_different_instructions(self):
        check("program P instruction a(x: u8) {} instruction b(x: u8) {}")

    def test_double_init(self):
        fails("init account state: State payer user\ninit account state: State payer user",
              ErrorKind.INVALID_INIT)


class TestReservedNames:

    @pytest.mark.parametrize("source", [
        "program P account A { type: u8 }",
        "program P instruction fn() {}",
        "program P instruction a(self: u8) {}",
        "program Mod",
    ])
    def test_rust_keywords_rejected(self, source):
        fails(source, ErrorKind.RESERVED_NAME, body=False)

    @pytest.mark.parametrize("name", ["Pubkey", "Signer", "ErrorCode", "Context", "String"])
    def test_account_shadowing_builtin_type(self, name):
        fails(f"program P account {name} {{ x: u8 }}", ErrorKind.RESERVED_NAME, body=False)

    def test_account_colliding_with_generated_context(self):
        fails("program P account RunContext { x: u8 } instruction run() {}",
              ErrorKind.RESERVED_NAME, body=False)

    @pytest.mark.parametrize("name", ["ctx", "system_program"])
    def test_reserved_parameter_names(self, name):
        fails(f"program P instruction a({name}: u8) {{}}", ErrorKind.RESERVED_NAME, body=False)


class TestTypeWellFormedness:

    def test_signer_field_rejected(self):
        fails("program P account A { s: Signer }", ErrorKind.INVALID_TYPE, body=False)

    def test_unbounded_string_field_rejected(self):
        diag = fails("program P account A { name: String }", ErrorKind.INVALID_TYPE, body=False)
        assert "capacity" in diag.message

    def test_unbounded_vec_field_rejected(self):
        fails("program P account A { items: Vec<u64> }", ErrorKind.INVALID_TYPE, body=False)

    def test_zero_capacity_rejected(self):
        fails("program P account A { name: String<0> }", ErrorKind.INVALID_TYPE, body=False)

    def test_nested_unbounded_vec_rejected(self):
        fails("program P account A { x: Option<Vec<u8>> }", ErrorKind.INVALID_TYPE, body=False)

    def test_self_embedding_rejected(self):
        diag = fails("program P account A { a: A }", ErrorKind.INVALID_TYPE, body=False)
        assert "A -> A" in diag.message

    def test_embedding_cycle_rejected(self):
        fails("program P account A { b: B } account B { a: Option<A> }", ErrorKind.INVALID_TYPE, body=False)

    def test_embedding_allowed(self):
        hir = check("program P account Outer { inner: Inner } account Inner { v: u8 }")
        outer = hir.get_account("Outer")
        assert outer.fields[0].account is hir.get_account("Inner")
        # Source order is kept even though Inner is built first.
        assert [a.name for a in hir.accounts] == ["Outer", "Inner"]

    def test_nested_account_param_rejected(self):
        fails("program P account A { x: u8 } instruction a(v: Vec<A>) {}", ErrorKind.INVALID_TYPE, body=False)

    def test_unbounded_value_params_allowed(self):
        hir = check("program P instruction a(name: String, data: Vec<u8>) {}")
        assert [p.kind for p in hir.instructions[0].params] == [ParamKind.VALUE, ParamKind.VALUE]


class TestExpressionTyping:

    def test_arithmetic_requires_matching_widths(self):
        diag = fails("state.count = state.count + state.level", ErrorKind.TYPE_MISMATCH)
        assert diag.details == {"operator": "+", "left_type": "u64", "right_type": "u8"}

    def test_arithmetic_on_bool_rejected(self):
        fails("require state.active + 1 > 0", ErrorKind.TYPE_MISMATCH)

    def test_literal_adopts_other_operand_width(self):
        hir = check_body("require state.level < 200")
        cond = hir.instructions[0].body[0].condition
        assert isinstance(cond, HirBinary)
        assert cond.right.ty == U8
        assert cond.operand_ty == U8

    def test_literal_out_of_range(self):
        diag = fails("require state.level < 256", ErrorKind.TYPE_MISMATCH)
        assert "256" in diag.message

    def test_comparison_yields_bool(self):
        hir = check_body("require state.count >= amount")
        assert hir.instructions[0].body[0].condition.ty == BOOL

    def test_comparing_mismatched_types(self):
        fails("require state.owner == state.count", ErrorKind.TYPE_MISMATCH)

    def test_comparing_accounts_rejected(self):
        fails("require state == state", ErrorKind.TYPE_MISMATCH)

    def test_logical_requires_bool(self):
        fails("require state.active && state.count", ErrorKind.TYPE_MISMATCH)

    def test_not_requires_bool(self):
        fails("require !state.count", ErrorKind.TYPE_MISMATCH)

    def test_negation_rejected_on_unsigned(self):
        fails("state.count = -state.count", ErrorKind.TYPE_MISMATCH)

    def test_negation_on_signed(self):
        hir = check_body("state.delta = -state.delta")
        assert isinstance(hir.instructions[0].body[0].value, HirUnary)

    def test_negative_literal_into_signed(self):
        hir = check_body("state.delta = -5")
        value = hir.instructions[0].body[0].value
        assert value.ty == I64
        assert value.operand == HirLiteral(ty=I64, value=5)

    def test_negative_literal_into_unsigned(self):
        fails("state.count = -1", ErrorKind.TYPE_MISMATCH)

    def test_require_condition_must_be_bool(self):
        diag = fails("require state.count", ErrorKind.TYPE_MISMATCH)
        assert diag.details["expected_type"] == "bool"


class TestConstantExpressions:
    """Expressions built only from literals are checked as a whole."""

    def test_literal_sum_out_of_range(self):
        diag = fails("state.level = 200 + 100", ErrorKind.TYPE_MISMATCH)
        assert diag.details == {"expected_type": "u8", "value": 300}

    def test_literal_sum_in_range(self):
        value = check_body("state.level = 200 + 55").instructions[0].body[0].value
        assert value.ty == U8
        assert value.left.ty == U8 and value.right.ty == U8

    def test_nested_intermediate_out_of_range(self):
        fails("state.level = (200 + 100) - 100", ErrorKind.TYPE_MISMATCH)

    def test_constant_beside_field(self):
        fails("state.level = state.level + 16 * 16", ErrorKind.TYPE_MISMATCH)

    def test_negated_constant(self):
        fails("state.delta = -(9223372036854775807 + 2)", ErrorKind.TYPE_MISMATCH)
        value = check_body("state.delta = -(3 * 4)").instructions[0].body[0].value
        assert value.ty == I64

    @pytest.mark.parametrize("op", ["/", "%"])
    def test_literal_zero_divisor(self, op):
        diag = fails(f"state.count = state.count {op} 0", ErrorKind.TYPE_MISMATCH)
        assert diag.details == {"operator": op}

    def test_constant_zero_divisor(self):
        fails("state.count = state.count / (2 - 2)", ErrorKind.TYPE_MISMATCH)

    def test_nonzero_divisor_allowed(self):
        check_body("state.count = state.count / 2 % 7")

    def test_literal_comparison_gets_width(self):
        cond = check_body("require 3000000000 == 3000000000").instructions[0].body[0].condition
        assert cond.operand_ty == I64
        assert cond.left.ty == I64 and cond.right.ty == I64

    def test_literal_comparison_beyond_i64(self):
        cond = check_body("require 18446744073709551615 > 1").instructions[0].body[0].condition
        assert cond.operand_ty == U64

    def test_literal_comparison_beyond_u64(self):
        fails("require 18446744073709551615 + 1 > 1", ErrorKind.TYPE_MISMATCH)

    def test_literal_expression_statement_gets_width(self):
        stmt = check_body("7 - 9").instructions[0].body[0]
        assert stmt.expr.ty == I64


class TestFieldAccess:

    def test_unknown_field(self):
        diag = fails("state.missing = 1", ErrorKind.INVALID_FIELD_ACCESS)
        assert diag.details["field"] == "missing"

    def test_signer_key(self):
        hir = check_body("require state.owner == user.key")
        key = hir.instructions[0].body[0].condition.right
        assert isinstance(key, HirAccountKey)
        assert key.ty == PUBKEY

    def test_account_key(self):
        hir = check_body("require state.key == state.owner")
        assert isinstance(hir.instructions[0].body[0].condition.left, HirAccountKey)

    def test_signer_has_no_other_fields(self):
        fails("require user.lamports > 0", ErrorKind.INVALID_FIELD_ACCESS)

    def test_field_on_value_param(self):
        fails("require amount.value > 0", ErrorKind.INVALID_FIELD_ACCESS)

    def test_embedded_field_chain(self):
        hir = check("""
program P
account Inner { v: u64 }
account Outer { inner: Inner }
instruction a(o: Outer) { o.inner.v = 3 }
""")
        target = hir.instructions[0].body[0].target
        assert isinstance(target, HirFieldGet)
        assert target.field.name == "v"
        assert target.field.owner == "Inner"
        assert target.ty == U64


class TestAssignment:

    def test_assign_to_value_param_rejected(self):
        fails("amount = 1", ErrorKind.INVALID_ASSIGNMENT)

    def test_assign_to_key_rejected(self):
        fails("state.key = user.key", ErrorKind.INVALID_ASSIGNMENT)

    def test_assign_to_whole_account_rejected(self):
        fails("state = state", ErrorKind.INVALID_ASSIGNMENT)

    def test_assign_type_mismatch(self):
        diag = fails("state.active = 1", ErrorKind.TYPE_MISMATCH)
        assert diag.details["expected_type"] == "bool"

    def test_string_literal_fits_capacity(self):
        check_body('state.label = "12345678"')

    def test_string_literal_exceeds_capacity(self):
        diag = fails('state.label = "123456789"', ErrorKind.TYPE_MISMATCH)
        assert diag.details["length"] == 9

    def test_string_capacity_counts_bytes(self):
        fails('state.label = "ééééé"', ErrorKind.TYPE_MISMATCH)

    def test_compound_assignment_lowered(self):
        hir = check_body("state.count += amount")
        stmt = hir.instructions[0].body[0]
        assert isinstance(stmt, HirAssign)
        assert isinstance(stmt.value, HirBinary)
        assert stmt.value.op == "+"
        assert stmt.value.left == stmt.target

    def test_compound_assignment_type_checked(self):
        fails("state.level *= state.count", ErrorKind.TYPE_MISMATCH)

    def test_expression_statement(self):
        hir = check_body("state.count + 1")
        assert hir.instructions[0].body[0].expr.ty == U64


class TestInit:

    def test_init_resolves_handles(self):
        hir = check_body("init account state: State payer user")
        instr = hir.instructions[0]
        init = instr.body[0]
        assert isinstance(init, HirInit)
        assert init.param is instr.params[1]
        assert init.payer is instr.params[0]
        assert init.account is hir.get_account("State")

    def test_init_with_signer(self):
        hir = check_body("init account state: State payer user signer other",
                         params="user: Signer, other: Signer, state: State")
        assert hir.instructions[0].body[0].signer.name == "other"

    def test_init_variable_must_match_type(self):
        diag = fails(STATE + "account Other { x: u8 }\n"
                     "instruction a(u: Signer, o: Other) { init account o: State payer u }",
                     ErrorKind.INVALID_INIT, body=False)
        assert diag.details["actual_type"] == "Other"

    def test_init_value_param_rejected(self):
        fails("init account amount: State payer user", ErrorKind.INVALID_INIT)

    def test_payer_must_be_signer(self):
        diag = fails("init account state: State payer amount", ErrorKind.INVALID_INIT)
        assert diag.details["role"] == "payer"

    def test_signer_clause_must_be_signer(self):
        fails("init account state: State payer user signer amount", ErrorKind.INVALID_INIT)


class TestHirShape:

    def test_param_kinds(self):
        hir = check_body("")
        assert [p.kind for p in hir.instructions[0].params] == [
            ParamKind.SIGNER, ParamKind.ACCOUNT, ParamKind.VALUE,
        ]
        assert hir.instructions[0].params[1].ty == AccountRef("State")

    def test_field_indices(self):
        hir = check_body("")
        state = hir.get_account("State")
        assert [f.index for f in state.fields] == list(range(6))
        assert all(f.owner == "State" for f in state.fields)

    def test_require_message_kept(self):
        hir = check_body('require amount > 0, "Amount must be positive"')
        stmt = hir.instructions[0].body[0]
        assert isinstance(stmt, HirRequire)
        assert stmt.message == "Amount must be positive"

    def test_param_refs_point_at_declarations(self):
        hir = check_body("state.count = amount")
        value = hir.instructions[0].body[0].value
        assert isinstance(value, HirParamRef)
        assert value.param is hir.instructions[0].params[2]

    def test_mutation_tracking(self):
        hir = check_body("state.count = 1")
        instr = hir.instructions[0]
        assert instr.mutates(instr.params[1])
        assert not instr.mutates(instr.params[0])

    def test_hir_serializes(self):
        hir = check_body("state.count += 1")
        data = hir.to_dict()
        assert data["program"] == "P"
        assert data["instructions"][0]["body"][0]["value"]["expr"] == "binary"

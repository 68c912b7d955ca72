import pytest
import pyarrow as pa
import pyarrow.compute as pc
from datawrangle.compute import TypeMismatch, UnknownColumn, col, lit
from datawrangle.compute.expressions import FunctionCallExpression, evaluate_as_mask
from datawrangle.compute.base import ColumnRef

@pytest.fixture
def sample_batch():
    return pa.RecordBatch.from_arrays(
        [pa.array([1, 2, 3, 4, 5]), pa.array(['a', 'b', 'c', 'd', 'e'])],
        names=['numbers', 'letters']
    )

def test_function_call_expression_init():
    expr = FunctionCallExpression(pc.add, ColumnRef('numbers'), 1)
    assert expr.func == pc.add
    assert len(expr.args) == 2
    assert isinstance(expr.args[0], ColumnRef)
    assert expr.args[1] == 1

def test_function_call_expression_str():
    expr = FunctionCallExpression(pc.add, ColumnRef('numbers'), 1)
    assert str(expr) == "pyarrow.compute.add(ColumnRef(numbers),1)"

def test_operators_build_function_calls():
    assert str(col('numbers') > 3) == "pyarrow.compute.greater(ColumnRef(numbers),3)"
    assert str(lit(2) * col('numbers')) == "pyarrow.compute.multiply(Literal(2),ColumnRef(numbers))"

def test_function_call_expression_apply_simple(sample_batch):
    expr = FunctionCallExpression(pc.add, ColumnRef('numbers'), 1)
    result = expr.apply(sample_batch)
    expected = pa.array([2, 3, 4, 5, 6])
    assert result.equals(expected)

def test_function_call_expression_apply_nested(sample_batch):
    expr = col('numbers') * 2 + 1
    result = expr.apply(sample_batch)
    expected = pa.array([3, 5, 7, 9, 11])
    assert result.equals(expected)

def test_reverse_operators(sample_batch):
    assert (10 - col('numbers')).apply(sample_batch).to_pylist() == [9, 8, 7, 6, 5]
    assert (-col('numbers')).apply(sample_batch).to_pylist() == [-1, -2, -3, -4, -5]

def test_division_is_true_division(sample_batch):
    result = (col('numbers') / 2).apply(sample_batch)
    assert result.to_pylist() == [0.5, 1.0, 1.5, 2.0, 2.5]

@pytest.mark.parametrize("expr", [
    col('letters') / 2,
    col('numbers') / 'b',
    10 / col('letters'),
])
def test_division_of_strings_fails(expr):
    data = pa.record_batch({'numbers': [1, 2], 'letters': ['3', '4']})
    with pytest.raises(TypeMismatch):
        expr.apply(data)

def test_function_call_expression_apply_string_ops(sample_batch):
    expr = FunctionCallExpression(pc.utf8_upper, ColumnRef('letters'))
    result = expr.apply(sample_batch)
    expected = pa.array(['A', 'B', 'C', 'D', 'E'])
    assert result.equals(expected)

def test_function_call_expression_apply_comparison(sample_batch):
    expr = col('numbers') > 3
    result = expr.apply(sample_batch)
    expected = pa.array([False, False, False, True, True])
    assert result.equals(expected)

def test_function_call_expression_apply_multiple_args(sample_batch):
    expr = FunctionCallExpression(pc.if_else,
                                  col('numbers') > 3,
                                  ColumnRef('letters'),
                                  'x')
    result = expr.apply(sample_batch)
    expected = pa.array(['x', 'x', 'x', 'd', 'e'])
    assert result.equals(expected)

def test_function_call_expression_apply_null_handling(sample_batch):
    numbers_with_null = pa.array([1, None, 3, 4, 5])
    batch_with_null = pa.RecordBatch.from_arrays([numbers_with_null, sample_batch['letters']], names=['numbers', 'letters'])
    expr = col('numbers') + 1
    result = expr.apply(batch_with_null)
    expected = pa.array([2, None, 4, 5, 6])
    assert result.equals(expected)

def test_three_valued_logic():
    batch = pa.record_batch({'a': [True, False, None, None], 'b': [None, None, True, False]})
    assert (col('a') & col('b')).apply(batch).to_pylist() == [None, False, None, False]
    assert (col('a') | col('b')).apply(batch).to_pylist() == [True, None, True, None]
    assert (~col('a')).apply(batch).to_pylist() == [False, True, None, None]

def test_null_checks_and_membership(sample_batch):
    batch = pa.record_batch({'species': ['DM', None, 'NL']})
    assert col('species').is_null().apply(batch).to_pylist() == [False, True, False]
    assert col('species').is_valid().apply(batch).to_pylist() == [True, False, True]
    assert col('letters').is_in(['a', 'e']).apply(sample_batch).to_pylist() == [True, False, False, False, True]

def test_function_call_expression_apply_invalid_column():
    batch = pa.RecordBatch.from_arrays([pa.array([1, 2, 3])], names=['numbers'])
    expr = FunctionCallExpression(pc.add, ColumnRef('non_existent'), 1)
    with pytest.raises(KeyError):
        expr.apply(batch)
    with pytest.raises(UnknownColumn) as excinfo:
        expr.apply(batch)
    assert excinfo.value.available == ['numbers']

def test_function_call_expression_apply_type_mismatch():
    batch = pa.RecordBatch.from_arrays([pa.array(['a', 'b', 'c'])], names=['letters'])
    expr = FunctionCallExpression(pc.add, ColumnRef('letters'), 1)
    with pytest.raises(TypeMismatch) as excinfo:
        expr.apply(batch)
    assert isinstance(excinfo.value.__cause__, pa.ArrowNotImplementedError)

def test_mask_must_be_boolean(sample_batch):
    with pytest.raises(TypeMismatch):
        evaluate_as_mask(sample_batch, col('numbers'))

def test_missing_mask_selects_nothing(sample_batch):
    mask = evaluate_as_mask(sample_batch, lit(None))
    assert mask.type == pa.bool_()
    assert mask.to_pylist() == [None] * 5

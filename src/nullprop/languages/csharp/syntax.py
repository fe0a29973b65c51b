"""Node kinds of the C#-style grammar."""

from __future__ import annotations

from enum import Enum


class SyntaxKind(str, Enum):
    COMPILATION_UNIT = "CompilationUnit"
    # Anything the tree model has no dedicated kind for.
    OTHER = "Other"

    # statements
    BLOCK = "Block"
    IF_STATEMENT = "IfStatement"
    ELSE_CLAUSE = "ElseClause"
    EXPRESSION_STATEMENT = "ExpressionStatement"
    RETURN_STATEMENT = "ReturnStatement"
    EMPTY_STATEMENT = "EmptyStatement"
    LOCAL_DECLARATION = "LocalDeclarationStatement"
    VARIABLE_DECLARATOR = "VariableDeclarator"

    # expressions
    IDENTIFIER_NAME = "IdentifierName"
    THIS_EXPRESSION = "ThisExpression"
    NULL_LITERAL = "NullLiteralExpression"
    NUMERIC_LITERAL = "NumericLiteralExpression"
    STRING_LITERAL = "StringLiteralExpression"
    TRUE_LITERAL = "TrueLiteralExpression"
    FALSE_LITERAL = "FalseLiteralExpression"
    PARENTHESIZED_EXPRESSION = "ParenthesizedExpression"
    CONDITIONAL_EXPRESSION = "ConditionalExpression"
    SIMPLE_ASSIGNMENT = "SimpleAssignmentExpression"
    COALESCE_EXPRESSION = "CoalesceExpression"
    LOGICAL_OR = "LogicalOrExpression"
    LOGICAL_AND = "LogicalAndExpression"
    EQUALS_EXPRESSION = "EqualsExpression"
    NOT_EQUALS_EXPRESSION = "NotEqualsExpression"
    LESS_THAN = "LessThanExpression"
    LESS_THAN_OR_EQUAL = "LessThanOrEqualExpression"
    GREATER_THAN = "GreaterThanExpression"
    GREATER_THAN_OR_EQUAL = "GreaterThanOrEqualExpression"
    ADD = "AddExpression"
    SUBTRACT = "SubtractExpression"
    MULTIPLY = "MultiplyExpression"
    DIVIDE = "DivideExpression"
    MODULO = "ModuloExpression"
    LOGICAL_NOT = "LogicalNotExpression"
    UNARY_MINUS = "UnaryMinusExpression"
    CAST_EXPRESSION = "CastExpression"
    SIMPLE_MEMBER_ACCESS = "SimpleMemberAccessExpression"
    CONDITIONAL_ACCESS = "ConditionalAccessExpression"
    MEMBER_BINDING = "MemberBindingExpression"
    ELEMENT_BINDING = "ElementBindingExpression"
    ELEMENT_ACCESS = "ElementAccessExpression"
    INVOCATION_EXPRESSION = "InvocationExpression"
    ARGUMENT_LIST = "ArgumentList"
    BRACKETED_ARGUMENT_LIST = "BracketedArgumentList"
    ARGUMENT = "Argument"
    SIMPLE_LAMBDA = "SimpleLambdaExpression"
    PARENTHESIZED_LAMBDA = "ParenthesizedLambdaExpression"
    PARAMETER_LIST = "ParameterList"
    PARAMETER = "Parameter"

    # patterns
    IS_PATTERN_EXPRESSION = "IsPatternExpression"
    CONSTANT_PATTERN = "ConstantPattern"
    NOT_PATTERN = "NotPattern"
    TYPE_PATTERN = "TypePattern"

    # types
    PREDEFINED_TYPE = "PredefinedType"
    NAMED_TYPE = "NamedType"
    GENERIC_NAME = "GenericName"
    NULLABLE_TYPE = "NullableType"
    ARRAY_TYPE = "ArrayType"


PREDEFINED_TYPES: dict[str, str] = {
    "object": "Object",
    "string": "String",
    "bool": "Boolean",
    "int": "Int32",
    "long": "Int64",
    "double": "Double",
    "char": "Char",
    "void": "Void",
    "float": "Single",
    "decimal": "Decimal",
    "byte": "Byte",
    "short": "Int16",
    "uint": "UInt32",
    "ulong": "UInt64",
}

BINARY_OPERATORS: dict[str, SyntaxKind] = {
    "||": SyntaxKind.LOGICAL_OR,
    "&&": SyntaxKind.LOGICAL_AND,
    "==": SyntaxKind.EQUALS_EXPRESSION,
    "!=": SyntaxKind.NOT_EQUALS_EXPRESSION,
    "<": SyntaxKind.LESS_THAN,
    "<=": SyntaxKind.LESS_THAN_OR_EQUAL,
    ">": SyntaxKind.GREATER_THAN,
    ">=": SyntaxKind.GREATER_THAN_OR_EQUAL,
    "+": SyntaxKind.ADD,
    "-": SyntaxKind.SUBTRACT,
    "*": SyntaxKind.MULTIPLY,
    "/": SyntaxKind.DIVIDE,
    "%": SyntaxKind.MODULO,
}

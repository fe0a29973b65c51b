"""Node kinds and lexical rules of the Basic-style grammar."""

from __future__ import annotations

from enum import Enum

from nullprop.syntax.lexer import LexerRules


class SyntaxKind(str, Enum):
    COMPILATION_UNIT = "CompilationUnit"

    # statements
    BLOCK = "Block"
    SINGLE_LINE_IF_STATEMENT = "SingleLineIfStatement"
    MULTI_LINE_IF_BLOCK = "MultiLineIfBlock"
    ELSE_CLAUSE = "ElseClause"
    EXPRESSION_STATEMENT = "ExpressionStatement"
    CALL_STATEMENT = "CallStatement"
    RETURN_STATEMENT = "ReturnStatement"
    LOCAL_DECLARATION = "LocalDeclarationStatement"
    VARIABLE_DECLARATOR = "VariableDeclarator"
    AS_CLAUSE = "SimpleAsClause"
    ASSIGNMENT_STATEMENT = "SimpleAssignmentStatement"

    # expressions
    IDENTIFIER_NAME = "IdentifierName"
    ME_EXPRESSION = "MeExpression"
    NOTHING_LITERAL = "NothingLiteralExpression"
    NUMERIC_LITERAL = "NumericLiteralExpression"
    STRING_LITERAL = "StringLiteralExpression"
    TRUE_LITERAL = "TrueLiteralExpression"
    FALSE_LITERAL = "FalseLiteralExpression"
    PARENTHESIZED_EXPRESSION = "ParenthesizedExpression"
    TERNARY_CONDITIONAL = "TernaryConditionalExpression"
    BINARY_CONDITIONAL = "BinaryConditionalExpression"
    OR_ELSE = "OrElseExpression"
    OR = "OrExpression"
    AND_ALSO = "AndAlsoExpression"
    AND = "AndExpression"
    NOT_EXPRESSION = "NotExpression"
    IS_EXPRESSION = "IsExpression"
    IS_NOT_EXPRESSION = "IsNotExpression"
    EQUALS_EXPRESSION = "EqualsExpression"
    NOT_EQUALS_EXPRESSION = "NotEqualsExpression"
    LESS_THAN = "LessThanExpression"
    LESS_THAN_OR_EQUAL = "LessThanOrEqualExpression"
    GREATER_THAN = "GreaterThanExpression"
    GREATER_THAN_OR_EQUAL = "GreaterThanOrEqualExpression"
    CONCATENATE = "ConcatenateExpression"
    ADD = "AddExpression"
    SUBTRACT = "SubtractExpression"
    MULTIPLY = "MultiplyExpression"
    DIVIDE = "DivideExpression"
    MODULO = "ModuloExpression"
    UNARY_MINUS = "UnaryMinusExpression"
    CTYPE_EXPRESSION = "CTypeExpression"
    DIRECT_CAST_EXPRESSION = "DirectCastExpression"
    TRY_CAST_EXPRESSION = "TryCastExpression"
    SIMPLE_MEMBER_ACCESS = "SimpleMemberAccessExpression"
    CONDITIONAL_ACCESS = "ConditionalAccessExpression"
    MEMBER_BINDING = "MemberBindingExpression"
    INVOCATION_EXPRESSION = "InvocationExpression"
    ARGUMENT_LIST = "ArgumentList"
    ARGUMENT = "SimpleArgument"
    LAMBDA = "SingleLineFunctionLambdaExpression"
    PARAMETER_LIST = "ParameterList"
    PARAMETER = "Parameter"

    # types
    PREDEFINED_TYPE = "PredefinedType"
    NAMED_TYPE = "NamedType"
    GENERIC_NAME = "GenericName"
    NULLABLE_TYPE = "NullableType"


# Keyword spelling (lower case) -> canonical type name.
PREDEFINED_TYPES: dict[str, str] = {
    "object": "Object",
    "string": "String",
    "boolean": "Boolean",
    "integer": "Int32",
    "long": "Int64",
    "double": "Double",
    "char": "Char",
}

KEYWORDS = frozenset(
    {
        "if", "then", "else", "elseif", "end", "call", "return", "dim", "as", "of",
        "nothing", "true", "false", "me", "not", "and", "andalso", "or", "orelse",
        "is", "isnot", "mod", "ctype", "directcast", "trycast", "function",
    }
    | set(PREDEFINED_TYPES)
)

RULES = LexerRules(
    punctuation=(
        "?.", "<>", "<=", ">=",
        "(", ")", ",", ".", "?", "=", "<", ">", "+", "-", "*", "/", "&",
    ),
    keywords=KEYWORDS,
    comment=r"'[^\n]*",
    case_insensitive=True,
    significant_newlines=True,
    line_continuation="_",
)

BINARY_OPERATORS: dict[str, SyntaxKind] = {
    "orelse": SyntaxKind.OR_ELSE,
    "or": SyntaxKind.OR,
    "andalso": SyntaxKind.AND_ALSO,
    "and": SyntaxKind.AND,
    "is": SyntaxKind.IS_EXPRESSION,
    "isnot": SyntaxKind.IS_NOT_EXPRESSION,
    "=": SyntaxKind.EQUALS_EXPRESSION,
    "<>": SyntaxKind.NOT_EQUALS_EXPRESSION,
    "<": SyntaxKind.LESS_THAN,
    "<=": SyntaxKind.LESS_THAN_OR_EQUAL,
    ">": SyntaxKind.GREATER_THAN,
    ">=": SyntaxKind.GREATER_THAN_OR_EQUAL,
    "&": SyntaxKind.CONCATENATE,
    "+": SyntaxKind.ADD,
    "-": SyntaxKind.SUBTRACT,
    "*": SyntaxKind.MULTIPLY,
    "/": SyntaxKind.DIVIDE,
    "mod": SyntaxKind.MODULO,
}

"""
Tree-sitter queries for extracting definitions and references.

Capture naming convention:
- @definition.<kind> wraps a declaration, @name is its identifier
- @import.source is the module path of an import statement
- @import.member is a name imported from it (`from pkg import member`)
- @call.name is the textual name of a called function
- @heritage.extends / @heritage.implements name a base type

Different grammars (typescript vs tsx vs javascript) use slightly different
node types, so every language gets its own query.
"""

PYTHON_QUERIES = """
(class_definition
  name: (identifier) @name) @definition.class

(function_definition
  name: (identifier) @name) @definition.function

(import_statement
  name: (dotted_name) @import.source) @import

(import_statement
  name: (aliased_import
    name: (dotted_name) @import.source)) @import

(import_from_statement
  module_name: (dotted_name) @import.source) @import

(import_from_statement
  module_name: (relative_import) @import.source) @import

(import_from_statement
  module_name: (_) @import.source
  name: (dotted_name) @import.member) @import

(import_from_statement
  module_name: (_) @import.source
  name: (aliased_import
    name: (dotted_name) @import.member)) @import

(call
  function: (identifier) @call.name) @call

(call
  function: (attribute
    attribute: (identifier) @call.name)) @call

(class_definition
  superclasses: (argument_list
    (identifier) @heritage.extends)) @heritage

(class_definition
  superclasses: (argument_list
    (attribute
      attribute: (identifier) @heritage.extends))) @heritage
"""

JAVASCRIPT_QUERIES = """
(class_declaration
  name: (identifier) @name) @definition.class

(function_declaration
  name: (identifier) @name) @definition.function

(generator_function_declaration
  name: (identifier) @name) @definition.function

(method_definition
  name: (property_identifier) @name) @definition.method

(lexical_declaration
  (variable_declarator
    name: (identifier) @name
    value: (arrow_function))) @definition.function

(lexical_declaration
  (variable_declarator
    name: (identifier) @name
    value: (function_expression))) @definition.function

(variable_declaration
  (variable_declarator
    name: (identifier) @name
    value: (arrow_function))) @definition.function

(variable_declaration
  (variable_declarator
    name: (identifier) @name
    value: (function_expression))) @definition.function

(import_statement
  source: (string) @import.source) @import

(call_expression
  function: (identifier) @call.name) @call

(call_expression
  function: (member_expression
    property: (property_identifier) @call.name)) @call

(new_expression
  constructor: (identifier) @call.name) @call

(class_declaration
  (class_heritage
    (identifier) @heritage.extends)) @heritage

(class_declaration
  (class_heritage
    (member_expression
      property: (property_identifier) @heritage.extends))) @heritage
"""

TYPESCRIPT_QUERIES = """
(class_declaration
  name: (type_identifier) @name) @definition.class

(abstract_class_declaration
  name: (type_identifier) @name) @definition.class

(interface_declaration
  name: (type_identifier) @name) @definition.interface

(function_declaration
  name: (identifier) @name) @definition.function

(generator_function_declaration
  name: (identifier) @name) @definition.function

(method_definition
  name: (property_identifier) @name) @definition.method

(lexical_declaration
  (variable_declarator
    name: (identifier) @name
    value: (arrow_function))) @definition.function

(lexical_declaration
  (variable_declarator
    name: (identifier) @name
    value: (function_expression))) @definition.function

(variable_declaration
  (variable_declarator
    name: (identifier) @name
    value: (arrow_function))) @definition.function

(import_statement
  source: (string) @import.source) @import

(call_expression
  function: (identifier) @call.name) @call

(call_expression
  function: (member_expression
    property: (property_identifier) @call.name)) @call

(new_expression
  constructor: (identifier) @call.name) @call

(class_heritage
  (extends_clause
    value: (identifier) @heritage.extends)) @heritage

(class_heritage
  (implements_clause
    (type_identifier) @heritage.implements)) @heritage

(interface_declaration
  (extends_type_clause
    (type_identifier) @heritage.extends)) @heritage
"""

LANGUAGE_QUERIES = {
    'python': PYTHON_QUERIES,
    'javascript': JAVASCRIPT_QUERIES,
    'typescript': TYPESCRIPT_QUERIES,
    'tsx': TYPESCRIPT_QUERIES,
}

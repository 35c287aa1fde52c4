#!/usr/bin/env python3
# -*- coding: UTF-8 -*-

import logging
from argparse import ArgumentParser, ArgumentTypeError
from pathlib import Path
from pprint import pprint
from sys import exit
from time import perf_counter
from typing import Union, Iterator, Optional

try:
    from lxml import etree
except ModuleNotFoundError as e:
    print(e.msg, "Make sure it has been installed to the active environment!", sep='\n')
    exit(1)

from entry_validator import CHANGE_FREQUENCIES
from sinks import FileSinkFactory
from sitemap_writer import DEFAULT_CONFIG, InvalidParameters, SitemapWriter, filename_prefix_validator as is_valid_filename


def run(argv: Optional[list[str]] = None) -> None:
    """Controls the general workflow. Also measures the script execution time and prints a report (if requested).
    The workflow includes:
      1. Creation a parser with necessary arguments;
      2. Parsing command-line arguments;
      3. Execution of work logic with a report generation;
      4. Printing the report.

    :param argv: Command-line arguments (sys.argv by default)

    :return: None
    """
    report_info = {
        'time spent (sec)': perf_counter(),
    }

    parser = create_parser()
    namespace = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if namespace.verbose else logging.WARNING,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    report_info, print_report = handle(vars(namespace), report_info)
    report_info['time spent (sec)'] = round(perf_counter() - report_info['time spent (sec)'], 6)

    if print_report:
        pprint(report_info, sort_dicts=False, width=10)


def create_parser() -> ArgumentParser:
    """Creates a parser instance and adds necessary arguments to it.
    Some of these arguments undergo additional value validation by calling validation functions when parsing.

    :return: A parser instance
    """
    parser = ArgumentParser(description='Parses command-line arguments for further sitemap creation')
    parser.add_argument('-f', '--file', type=Path, required=True,
                        help='Path to an XML-file (or a gz-archive with it)')
    parser.add_argument('-t', '--target tag(s)', nargs='*', default=['.//{*}loc'],
                        help='Tag(s) to find and include in the sitemap (separated by space), '
                             'as XPath expressions. Default: any "loc" element')
    parser.add_argument('-o', '--output dir', type=Path, default='./sitemap',
                        help='Path to the directory where the sitemap will be placed')
    parser.add_argument('-a', '--addresses per file', type=addresses_num_validator, default=50_000,
                        help='Max addresses number for each sitemap file (up to 50k)')
    parser.add_argument('-u', '--url priority', type=priority_range_validator, default=None,
                        help='URLs priority (from 0 to 1.0)')
    parser.add_argument('-c', '--change frequency', choices=CHANGE_FREQUENCIES, default=None,
                        help='How frequently the pages are likely to change')
    parser.add_argument('-p', '--filename prefix', type=filename_prefix_validator,
                        default=DEFAULT_CONFIG['file_name_prefix'],
                        help='Prefix to use in output filenames, eg. "prefix-1.xml", "prefix-2.xml"...')
    parser.add_argument('-n', '--hostname', default=DEFAULT_CONFIG['hostname'],
                        help='Base URL of the sitemap files, used in the sitemap-index')
    parser.add_argument('-i', '--index name', type=filename_prefix_validator,
                        default=DEFAULT_CONFIG['index_name'], help='File name of the sitemap-index')
    parser.add_argument('-m', '--mobile', action='store_true', help='Mark every URL as a mobile page')
    parser.add_argument('-r', '--report', action='store_true', help='Print a short report')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log what the generator does')

    return parser


def addresses_num_validator(digits: str) -> int:
    """Check if the value is in an allowable range.

    :param digits: A string with digits

    :raise ArgumentTypeError: If the value is not in an allowable range

    :return: A validated integer value
    """
    digits = int(digits)
    if not 0 < digits <= 50_000:
        raise ArgumentTypeError(f'{digits} is not in the range 1..50000')
    return digits


def priority_range_validator(priority: str) -> float:
    """Check if the value is in an allowable range.

        :param priority: A string with digits

        :raise ArgumentTypeError: If the value is not in an allowable range

        :return: A validated float value
    """
    priority = float(priority)
    if not 0 <= priority <= 1:
        raise ArgumentTypeError(f'{priority} is not in the range 0..1')
    return priority


def filename_prefix_validator(prefix: str) -> str:
    """Checks if string contains any of the unallowable symbols.
    It should prevent the creation of a file with a name that is not valid for a server.

    :param prefix: A string to check

    :raise ArgumentTypeError: If any of unallowable symbols is in the string

    :return: The same string
    """
    if not is_valid_filename(prefix):
        raise ArgumentTypeError(f'"{prefix}" is not a valid file name')
    return prefix


def handle(options: dict, report: dict) -> tuple[dict, bool]:
    """Controls the working logic of the script.
    It parses the input, then injects the text of every found element into a sitemap writer
    that splits the output into files and writes the sitemap-index.

    :param options: Parsed arguments from a command-line
    :param report: A dict for collecting report data

    :return: (Report data dict, Boolean whether to print the report)
    """
    input_xml_file: Path = options['file']
    output_dir: Path = options['output dir']
    tags: list[str] = options['target tag(s)']
    need_report: bool = options['report']

    input_xml_file = input_xml_file.resolve()
    try:
        parsed_xml_tree = etree.parse(str(input_xml_file))
    except IOError:
        print(f'File "{input_xml_file}" does not exist')
        exit(1)
    except etree.XMLSyntaxError:
        print(f'File "{input_xml_file}" contains invalid elements')
        exit(1)

    output_dir = output_dir.resolve()
    report['sitemap path'] = str(output_dir)
    report['sitemap files created'] = []
    report['sitemap-index created'] = 0

    try:
        writer = SitemapWriter({
            'limit': options['addresses per file'],
            'is_mobile': options['mobile'],
            'hostname': options['hostname'],
            'index_name': options['index name'],
            'file_name_prefix': options['filename prefix'],
        }, sink_factory=FileSinkFactory(output_dir))
    except InvalidParameters as e:
        print(e)
        exit(1)
    writer.on_sitemap_created(report['sitemap files created'].append)
    writer.on_sitemap_index_created(lambda: report.update({'sitemap-index created': 1}))

    urls, report = get_url_iterator(parsed_xml_tree, tags, report)

    entry = {}
    if options['url priority'] is not None:
        entry['priority'] = options['url priority']
    if options['change frequency'] is not None:
        entry['change_freq'] = options['change frequency']

    for url, x_path in urls:
        writer.inject({'url': url, **entry})
        report['tags handled'][x_path] += 1

    writer.done()

    return report, need_report


def get_url_iterator(element: Union[etree._Element, etree._ElementTree], xpath_expressions: list[str],
                     report: dict) -> tuple[Iterator[tuple[str, str]], dict]:
    """Finds the elements matching each XPath expression and yields their text as URLs.
    Surrounding whitespace is stripped, elements without text are skipped.
    Also fills the report dict with a counter per expression.

    :param element: An instance of ElementTree or Element. In the latter case it must be the root of the tree
    :param xpath_expressions: XPath expressions of the elements holding URLs
    :param report: A dict for collecting report data

    :return: (An iterator of (URL, XPath expression) pairs, Report data dict)
    """
    report['tags handled'] = dict.fromkeys(xpath_expressions, 0)
    found = []
    for x_path in xpath_expressions:
        try:
            found.append((x_path, element.iterfind(x_path)))
        except SyntaxError:
            print(f'Wrong syntax of the tag "{x_path}". See the "readme" for help!')
            exit(1)

    texts = (((i_elem.text or '').strip(), x_path) for x_path, elements in found for i_elem in elements)
    return ((url, x_path) for url, x_path in texts if url), report


if __name__ == "__main__":
    run()

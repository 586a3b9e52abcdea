"""
Interface strings for the supported locales.

Field labels come from the template specification; these are the strings of
the app itself (buttons, page titles, notifications).
"""

from typing import Dict

FALLBACK_LOCALE = "en"

UI_STRINGS: Dict[str, Dict[str, str]] = {
    'en': {
        'nav.upload': 'Upload Template',
        'nav.templates': 'My Templates',
        'nav.render': 'Render Document',
        'upload.title': 'Upload Template',
        'upload.subtitle': 'Upload a DOCX file to extract form fields',
        'upload.inspecting': 'Inspecting template...',
        'upload.success': 'Template inspected successfully!',
        'upload.inspect': 'Inspect',
        'templates.title': 'My Templates',
        'templates.empty': 'No templates yet. Upload one to get started.',
        'templates.use': 'Use',
        'templates.deleted': 'Template deleted',
        'render.title': 'Render Document',
        'render.subtitle': 'Fill in the form and generate your document',
        'render.no_template': 'No template selected. Upload or pick a template first.',
        'render.rendering': 'Generating document...',
        'render.success': 'Document generated successfully!',
        'render.download': 'Download Document',
        'render.new_form': 'Fill in again',
        'form.submit': 'Submit',
        'form.add': 'Add',
        'form.remove': 'Remove',
        'form.select': 'Select...',
        'form.item': 'Item {number}',
        'form.image_hint': 'Image size: {width} x {height}',
        'form.fix_errors': 'Please fix the highlighted fields',
        'common.delete': 'Delete',
        'common.language': 'Language',
    },
    'ar': {
        'nav.upload': 'رفع قالب',
        'nav.templates': 'قوالبي',
        'nav.render': 'إنشاء مستند',
        'upload.title': 'رفع قالب',
        'upload.subtitle': 'ارفع ملف DOCX لاستخراج حقول النموذج',
        'upload.inspecting': 'جاري فحص القالب...',
        'upload.success': 'تم فحص القالب بنجاح!',
        'upload.inspect': 'فحص',
        'templates.title': 'قوالبي',
        'templates.empty': 'لا توجد قوالب بعد. ارفع قالبا للبدء.',
        'templates.use': 'استخدام',
        'templates.deleted': 'تم حذف القالب',
        'render.title': 'إنشاء مستند',
        'render.subtitle': 'املأ النموذج وأنشئ المستند',
        'render.no_template': 'لم يتم اختيار قالب. ارفع قالبا أو اختر واحدا أولا.',
        'render.rendering': 'جاري إنشاء المستند...',
        'render.success': 'تم إنشاء المستند بنجاح!',
        'render.download': 'تحميل المستند',
        'render.new_form': 'ملء النموذج مجددا',
        'form.submit': 'إرسال',
        'form.add': 'إضافة',
        'form.remove': 'إزالة',
        'form.select': 'اختر...',
        'form.item': 'عنصر {number}',
        'form.image_hint': 'حجم الصورة: {width} x {height}',
        'form.fix_errors': 'يرجى تصحيح الحقول المحددة',
        'common.delete': 'حذف',
        'common.language': 'اللغة',
    },
}


def get_strings(locale: str) -> Dict[str, str]:
    """Return the string table of a locale, filled up from the fallback locale."""
    strings = dict(UI_STRINGS[FALLBACK_LOCALE])
    strings.update(UI_STRINGS.get(locale, {}))
    return strings

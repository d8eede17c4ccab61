PAGE_SIZE = 10

# User reply keyboard
BTN_SHARE_PHONE = "📱 Telefon raqamni ulashish"
BTN_COMPOSE = "✍️ Murojaatni yozing"
BTN_SUBMIT = "📨 Murojaatni yuborish"

# Lenient match for cached/edited compose labels.
COMPOSE_KEYWORD = "murojaatni yoz"

# Admin reply keyboard
BTN_ADMIN_REQUESTS = "📨 Murojaatlar"
BTN_ADMIN_PHONES = "📞 Telefonlar"
BTN_ADMIN_EXPORT = "🔄 CSV eksport"
BTN_ADMIN_SEARCH = "🔍 Qidirish"

# Admin inline keyboard
BTN_PREV = "◀️ Oldingi"
BTN_NEXT = "▶️ Keyingi"
BTN_HOME = "🏠 Menyu"
BTN_DELETE_PREFIX = "🗑"

# Callback data
CB_PREFIX = "admin"
CB_HOME = "admin:home"
CB_EXPORT = "admin:export"
CB_SEARCH = "admin:search"
SECTION_REQUESTS = "reqs"
SECTION_PHONES = "phones"

# Keyboard kinds returned by the composer; handlers turn them into markup.
KB_SHARE_PHONE = "share_phone"
KB_COMPOSE = "compose"
KB_SUBMIT = "submit"
KB_REMOVE = "remove"
KB_ADMIN = "admin"

UNKNOWN_NAME = "Noma’lum"
DASH = "—"

TEXT_WELCOME = "Assalomu alaykum! 👋\nBotdan foydalanish uchun avval telefon raqamingizni ulashing."
TEXT_PHONE_FIRST = "Avval telefon raqamingizni ulashing, keyin murojaat yuborishingiz mumkin."
TEXT_CONTACT_MISMATCH = (
    "Iltimos, *o‘zingizga tegishli* telefon raqamini '" + BTN_SHARE_PHONE + "' tugmasi bilan jo‘nating."
)
TEXT_CONTACT_ADMIN = "Admin sifatida kontakt ulashingiz shart emas."
TEXT_PHONE_SAVED = "Rahmat! ✅ Endi murojaatingizni yozishingiz va u bilan birga foto yuborishingiz mumkin."
TEXT_COMPOSE_PROMPT = 'Murojaat matnini yozing. Tayyor bo‘lgach pastdagi *"' + BTN_SUBMIT + '"* tugmasi bilan yuboring.'
TEXT_SUBMITTED = (
    "✅ Murojaatingiz yuborildi! Xohlasangiz yana murojaat yozishingiz va u bilan birga foto yuborishingiz mumkin."
)
TEXT_GUIDANCE = f"Murojaat yozish uchun pastdagi *“{BTN_COMPOSE}”* tugmasini bosing."

TEXT_ADMIN_WELCOME = "👨‍💼 Admin paneliga xush kelibsiz!"
TEXT_ADMIN_MENU = "🛠 Admin menyu"
TEXT_ADMIN_HOME = "🛠 *Admin menyu*\nBo‘limni tanlang:"
TEXT_ADMIN_ONLY = "Faqat admin uchun."
TEXT_SEARCH_PROMPT = "🔍 Qidirish: iltimos *UserID* (raqam) yuboring."
TEXT_SEARCH_FORMAT = "Raqamli UserID yuboring."
TEXT_SEARCH_NOT_FOUND = "Topilmadi."
TEXT_REQUESTS_EMPTY = "📨 Murojaatlar yo‘q."
TEXT_PHONES_EMPTY = "📞 Telefonlar ro‘yxati bo‘sh."
TEXT_REQUEST_DELETED = "Murojaat o'chirildi."
TEXT_PHONE_DELETED = "Telefon o'chirildi."
TEXT_EXPORT_SENT = "CSV fayllar yuborildi."
TEXT_EXPORT_FAILED = "Xato: CSV eksportda muammo."
TEXT_EXPORT_PHONES_CAPTION = "📞 Telefonlar CSV"
TEXT_EXPORT_REQUESTS_CAPTION = "📨 Murojaatlar CSV"
TEXT_PHOTO_CAPTION = "📎 Rasm ilova"

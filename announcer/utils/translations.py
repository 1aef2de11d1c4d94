"""
Announcer Translation System
Automatic language detection: Indonesian for id-*, all others = English
"""

from typing import Any, Dict, Optional

TRANSLATIONS: Dict[str, Dict[str, str]] = {
    'id': {
        # Prayer names
        'prayer_fajr': 'Subuh',
        'prayer_dhuhr': 'Dzuhur',
        'prayer_asr': 'Ashar',
        'prayer_maghrib': 'Maghrib',
        'prayer_isha': 'Isya',
        'prayer_generic': 'Shalat',

        # Playback
        'now_playing': 'Memainkan pengumuman: {name}',
        'playback_started': 'Pemutaran dimulai',
        'playback_stopped': 'Pemutaran dan hitungan mundur dihentikan',
        'playback_failed': 'Gagal memainkan pengumuman: {reason}',
        'playback_skipped_prayer': 'Skip pengumuman - Sedang waktu {prayer} hingga {until}',
        'no_announcements': 'Tidak ada pengumuman yang tersedia',
        'already_playing': 'Pemutaran sudah berjalan',
        'countdown_active': 'Hitungan mundur sedang berjalan. Tunggu hingga selesai atau hentikan terlebih dahulu.',
        'countdown_resumed': 'Melanjutkan hitungan mundur: {remaining}',
        'countdown_expired_offline': 'Hitungan mundur berakhir saat aplikasi tidak aktif, memutar pengumuman',
        'auto_play_after_prayer': 'Waktu {prayer} telah selesai. Memulai pengumuman otomatis.',
        'invalid_index': 'Nomor pengumuman tidak valid',
        'interval_updated': 'Interval diatur ke {minutes} menit',

        # Catalog
        'catalog_loaded': 'Berhasil memuat {count} pengumuman dari storage',
        'catalog_empty': 'Tidak ada pengumuman di storage. Silakan upload file audio.',
        'catalog_load_failed': 'Gagal memuat pengumuman dari storage',
        'catalog_timeout': 'Timeout saat memuat pengumuman. Menggunakan data lokal.',
        'catalog_network': 'Masalah jaringan. Menggunakan data lokal.',
        'catalog_cache_fallback': '{reason} - Menggunakan {count} pengumuman tersimpan lokal',
        'upload_success': 'Pengumuman berhasil diunggah!',
        'upload_failed': 'Gagal mengunggah file',
        'invalid_file_type': 'File harus berupa audio (MP3, WAV, OGG, M4A)',
        'file_too_large': 'Ukuran file terlalu besar. Maksimal {max_mb}MB',
        'delete_success': 'Pengumuman berhasil dihapus',
        'delete_not_found': 'File tidak ditemukan di storage. Mungkin sudah dihapus sebelumnya.',
        'delete_failed': 'Gagal menghapus pengumuman',
        'store_not_configured': 'Konfigurasi Blob storage belum diatur. Periksa environment variables.',
        'store_auth_failed': 'Autentikasi Blob storage gagal. Periksa BLOB_READ_WRITE_TOKEN.',
        'network_retry_later': 'Tidak dapat terhubung ke server. Periksa koneksi internet dan coba lagi.',

        # Prayer times
        'prayer_times_updated': 'Jadwal shalat diperbarui',
        'prayer_times_cached': 'Menggunakan jadwal shalat tersimpan',
        'prayer_times_default': 'Gagal mengambil jadwal shalat, menggunakan default',
        'prayer_times_no_location': 'Lokasi belum diatur, menggunakan jadwal shalat default',
        'prayer_in_progress': 'Saat ini sedang waktu shalat, pengumuman ditunda',

        # Generic
        'ok': 'OK',
        'page_not_found': 'Halaman tidak ditemukan',
        'method_not_allowed': 'Metode tidak diizinkan',
        'an_internal_error_occurred': 'Terjadi kesalahan internal',
        'rate_limited': 'Terlalu banyak permintaan. Coba lagi nanti.',
    },
    'en': {
        'prayer_fajr': 'Fajr',
        'prayer_dhuhr': 'Dhuhr',
        'prayer_asr': 'Asr',
        'prayer_maghrib': 'Maghrib',
        'prayer_isha': 'Isha',
        'prayer_generic': 'Prayer',

        'now_playing': 'Playing announcement: {name}',
        'playback_started': 'Playback started',
        'playback_stopped': 'Playback and countdown stopped',
        'playback_failed': 'Failed to play announcement: {reason}',
        'playback_skipped_prayer': 'Announcement skipped - {prayer} prayer in progress until {until}',
        'no_announcements': 'No announcements available',
        'already_playing': 'Playing already in progress',
        'countdown_active': 'A countdown is running. Wait until it finishes or stop it first.',
        'countdown_resumed': 'Resuming countdown: {remaining}',
        'countdown_expired_offline': 'Countdown expired while the scheduler was offline, playing now',
        'auto_play_after_prayer': '{prayer} prayer has finished. Starting announcements automatically.',
        'invalid_index': 'Invalid announcement index',
        'interval_updated': 'Interval set to {minutes} minutes',

        'catalog_loaded': 'Loaded {count} announcements from storage',
        'catalog_empty': 'No announcements in storage. Please upload an audio file.',
        'catalog_load_failed': 'Failed to load announcements from storage',
        'catalog_timeout': 'Timed out loading announcements. Using local data.',
        'catalog_network': 'Network problem. Using local data.',
        'catalog_cache_fallback': '{reason} - Using {count} locally saved announcements',
        'upload_success': 'Announcement uploaded successfully!',
        'upload_failed': 'File upload failed',
        'invalid_file_type': 'File must be audio (MP3, WAV, OGG, M4A)',
        'file_too_large': 'File is too large. Maximum {max_mb}MB',
        'delete_success': 'Announcement deleted successfully',
        'delete_not_found': 'File not found in storage. It may have already been deleted.',
        'delete_failed': 'Failed to delete announcement',
        'store_not_configured': 'Blob storage is not configured. Check environment variables.',
        'store_auth_failed': 'Blob storage authentication failed. Check BLOB_READ_WRITE_TOKEN.',
        'network_retry_later': 'Cannot reach storage. Check the connection and try again later.',

        'prayer_times_updated': 'Prayer times updated',
        'prayer_times_cached': 'Using saved prayer times',
        'prayer_times_default': 'Failed to fetch prayer times, using defaults',
        'prayer_times_no_location': 'No location configured, using default prayer times',
        'prayer_in_progress': 'Prayer time in progress, announcements are deferred',

        'ok': 'OK',
        'page_not_found': 'Page not found',
        'method_not_allowed': 'Method not allowed',
        'an_internal_error_occurred': 'An internal error occurred',
        'rate_limited': 'Too many requests. Try again later.',
    },
}

SUPPORTED_LANGUAGES = tuple(TRANSLATIONS)


def normalize_language(lang: Optional[str]) -> str:
    """Map a configured language value onto a supported code."""
    if isinstance(lang, str) and lang.strip().lower()[:2] == 'id':
        return 'id'
    return 'en'


def get_language(request: Optional[Any] = None) -> str:
    """Determines language based on Accept-Language header.

    Args:
        request: Flask request object with headers

    Returns:
        str: Language code ('id' or 'en')
    """
    if not request or not hasattr(request, 'headers'):
        return 'en'

    try:
        accept_language = request.headers.get('Accept-Language', '') or ''
    except (AttributeError, TypeError):
        return 'en'

    primary = accept_language.split(',')[0].strip().lower()
    if primary.startswith('id') or primary.startswith('in'):
        return 'id'
    return 'en'


def get_user_language(request: Optional[Any] = None) -> str:
    """Alias for get_language."""
    return get_language(request)


def t(key: str, lang: str = 'en', **kwargs: Any) -> str:
    """Translation function with placeholder support.

    Fallback chain: lang -> en -> key.
    """
    translation = TRANSLATIONS.get(lang, {}).get(key, TRANSLATIONS['en'].get(key, key))

    if kwargs:
        try:
            return translation.format(**kwargs)
        except (KeyError, ValueError, TypeError):
            return translation

    return translation


def get_translations(lang: str = 'en') -> Dict[str, str]:
    """Returns all translations for a language."""
    return TRANSLATIONS.get(lang, TRANSLATIONS['en'])


def t_api(key: str, request=None, **kwargs) -> str:
    """Translation for API responses with automatic language detection."""
    lang = get_user_language(request)
    return t(key, lang, **kwargs)
